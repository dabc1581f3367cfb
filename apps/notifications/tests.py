from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from apps.notices.models import Notice
from apps.users.models import User
from .models import Notification
from .services import NotificationFanout


class NotificationFanoutTestCase(TestCase):
    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')
        User.objects.create_user(username='cse1', password='pass12345', role='student', branch='CSE', year=1)
        User.objects.create_user(username='cse4', password='pass12345', role='student', branch='CSE', year=4)
        User.objects.create_user(username='eee4', password='pass12345', role='student', branch='EEE', year=4)

    def make_notice(self, **fields):
        return Notice.objects.create(
            title='Fee deadline', content='Pay fees by the 30th.', category='Important',
            author=self.teacher, is_published=True, **fields
        )

    def recipients(self, notice):
        return set(NotificationFanout.recipients_for(notice).values_list('username', flat=True))

    def test_every_student_is_a_recipient_without_selectors(self):
        User.objects.create_user(username='left', password='pass12345', role='student', branch='CSE', year=1,
                                 is_active=False)
        notice = self.make_notice()
        self.assertEqual(self.recipients(notice), {'cse1', 'cse4', 'eee4', 'left'})

    def test_empty_stored_selector_matches_no_one(self):
        notice = self.make_notice(target_audience={'branches': []})
        self.assertEqual(self.recipients(notice), set())

        notice = self.make_notice(target_audience={'branches': ['CSE'], 'years': []})
        self.assertEqual(self.recipients(notice), set())

    def test_missing_selector_does_not_restrict(self):
        notice = self.make_notice(target_audience={'branches': ['EEE']})
        self.assertEqual(self.recipients(notice), {'eee4'})

    def test_year_wildcard_with_branch_selector(self):
        notice = self.make_notice(target_audience={'branches': ['CSE'], 'years': ['All']})
        self.assertEqual(self.recipients(notice), {'cse1', 'cse4'})

    def test_year_selector_only(self):
        notice = self.make_notice(target_audience={'years': ['4']})
        self.assertEqual(self.recipients(notice), {'cse4', 'eee4'})

    def test_deliver_reports_count(self):
        notice = self.make_notice(priority='Urgent')
        result = NotificationFanout.deliver(notice)

        self.assertEqual(result.notice_id, notice.id)
        self.assertEqual(result.delivered, 3)
        self.assertIsNone(result.error)
        self.assertEqual({n.data['priority'] for n in Notification.objects.all()}, {'Urgent'})

    def test_deliver_with_no_matching_students(self):
        notice = self.make_notice(target_audience={'branches': ['ME']})
        result = NotificationFanout.deliver(notice)

        self.assertEqual(result.delivered, 0)
        self.assertFalse(Notification.objects.exists())

    def test_deliver_swallows_database_errors(self):
        notice = self.make_notice()
        with patch.object(Notification.objects, 'bulk_create', side_effect=DatabaseError('insert failed')):
            with self.assertLogs('apps.notifications.services', level='ERROR'):
                result = NotificationFanout.deliver(notice)

        self.assertEqual(result.delivered, 0)
        self.assertEqual(result.error, 'insert failed')
        self.assertFalse(Notification.objects.exists())


class MyNotificationsAPITestCase(APITestCase):
    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher', password='pass12345', role='teacher')
        self.student = User.objects.create_user(username='cse1', password='pass12345', role='student', branch='CSE', year=1)
        self.other = User.objects.create_user(username='ece1', password='pass12345', role='student', branch='ECE', year=1)

    def test_lists_only_own_notifications(self):
        notice = Notice.objects.create(
            title='Lab moved', content='Lab 3 moves to block B.', category='General',
            author=self.teacher, is_published=True, target_audience={'branches': ['CSE']}
        )
        NotificationFanout.deliver(notice)

        self.client.force_authenticate(user=self.student)
        response = self.client.get(reverse('notifications:my_notifications'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['data'][0]['message'], 'Lab moved')
        self.assertEqual(response.data['data'][0]['data']['noticeId'], notice.id)

        self.client.force_authenticate(user=self.other)
        response = self.client.get(reverse('notifications:my_notifications'))
        self.assertEqual(response.data['count'], 0)

    def test_requires_authentication(self):
        response = self.client.get(reverse('notifications:my_notifications'))
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.data['success'])
