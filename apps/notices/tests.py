from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.notifications.models import Notification
from apps.users.models import User
from .models import Notice
from .services import NoticeService, NoticeStatsService


def notice_payload(**overrides):
    payload = {
        'title': 'Mid-term exam schedule',
        'content': 'Mid-term exams start next Monday.',
        'category': 'Academic',
        'priority': 'High',
    }
    payload.update(overrides)
    return payload


class NoticeTestCase(APITestCase):
    def setUp(self):
        self.teacher = User.objects.create_user(username='teacher_a', password='pass12345', role='teacher',
                                                first_name='Anita', last_name='Rao')
        self.other_teacher = User.objects.create_user(username='teacher_b', password='pass12345', role='teacher')
        self.admin = User.objects.create_user(username='admin', password='pass12345', role='admin')

        self.cse1 = User.objects.create_user(username='cse1', password='pass12345', role='student', branch='CSE', year=1)
        self.cse2 = User.objects.create_user(username='cse2', password='pass12345', role='student', branch='CSE', year=2)
        self.ece1 = User.objects.create_user(username='ece1', password='pass12345', role='student', branch='ECE', year=1)
        self.me3 = User.objects.create_user(username='me3', password='pass12345', role='student', branch='ME', year=3)

        self.list_url = reverse('notices:list_create')

    def detail_url(self, notice_id):
        return reverse('notices:detail', args=[notice_id])

    def create_notice(self, author=None, **fields):
        defaults = {
            'title': 'Library closed',
            'content': 'The library is closed on Friday.',
            'category': 'General',
            'author': author or self.teacher,
            'is_published': True,
        }
        defaults.update(fields)
        return Notice.objects.create(**defaults)

    def notified_users(self):
        return set(Notification.objects.values_list('recipient__username', flat=True))


class CreateNoticeTests(NoticeTestCase):
    def test_create_publishes_and_notifies_every_student(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload())

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertTrue(response.data['data']['isPublished'])
        self.assertEqual(response.data['data']['author']['name'], 'Anita Rao')

        notice = Notice.objects.get()
        self.assertEqual(notice.author, self.teacher)
        self.assertEqual(Notification.objects.count(), 4)
        self.assertEqual(self.notified_users(), {'cse1', 'cse2', 'ece1', 'me3'})

        notification = Notification.objects.get(recipient=self.cse1)
        self.assertEqual(notification.type, 'notice_posted')
        self.assertEqual(notification.title, 'New Notice')
        self.assertEqual(notification.message, 'Mid-term exam schedule')
        self.assertEqual(notification.data, {'noticeId': notice.id, 'category': 'Academic', 'priority': 'High'})

    def test_scheduled_notice_is_unpublished_and_silent(self):
        self.client.force_authenticate(user=self.teacher)
        scheduled = (timezone.now() + timedelta(days=2)).isoformat()
        response = self.client.post(self.list_url, notice_payload(scheduledFor=scheduled))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['data']['isPublished'])
        self.assertFalse(Notice.objects.get().is_published)
        self.assertEqual(Notification.objects.count(), 0)

    def test_client_cannot_force_publish_flag_on_create(self):
        self.client.force_authenticate(user=self.teacher)
        scheduled = (timezone.now() + timedelta(days=1)).isoformat()
        response = self.client.post(self.list_url, notice_payload(scheduledFor=scheduled, isPublished=True))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(Notice.objects.get().is_published)
        self.assertEqual(Notification.objects.count(), 0)

    def test_all_branches_wildcard_reaches_every_branch(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': ['All'], 'years': ['All']}))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.notified_users(), {'cse1', 'cse2', 'ece1', 'me3'})

    def test_branch_selectors_narrow_recipients(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': ['CSE', 'ECE']}))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['targetAudience'], {'branches': ['CSE', 'ECE']})
        self.assertEqual(self.notified_users(), {'cse1', 'cse2', 'ece1'})

    def test_branch_and_year_selectors_combine(self):
        self.client.force_authenticate(user=self.teacher)
        self.client.post(self.list_url, notice_payload(targetAudience={'branches': ['CSE', 'ECE'], 'years': ['1']}))

        self.assertEqual(self.notified_users(), {'cse1', 'ece1'})

    def test_flat_branch_and_year_are_used_without_target_audience(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(branch='CSE', year=2))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.notified_users(), {'cse2'})

    def test_title_over_100_chars_is_rejected(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(title='x' * 101))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('Title cannot be more than 100 characters', response.data['error'])
        self.assertEqual(Notice.objects.count(), 0)
        self.assertEqual(Notification.objects.count(), 0)

    def test_missing_fields_and_bad_category_are_rejected(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, {'title': 'Only a title', 'category': 'Sports'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('content', response.data['errors'])
        self.assertIn('category', response.data['errors'])
        self.assertEqual(Notice.objects.count(), 0)

    def test_content_over_1000_chars_is_rejected(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(content='y' * 1001))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Content cannot be more than 1000 characters', response.data['error'])

    def test_target_audience_selectors_must_be_arrays(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': 'CSE'}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Branches must be an array', response.data['error'])

        response = self.client.post(self.list_url, notice_payload(targetAudience={'years': 2}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Years must be an array', response.data['error'])
        self.assertEqual(Notice.objects.count(), 0)

    def test_empty_selector_lists_are_rejected(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': []}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Branches cannot be empty', response.data['error'])

        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': ['CSE'], 'years': []}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Years cannot be empty', response.data['error'])
        self.assertEqual(Notice.objects.count(), 0)
        self.assertEqual(Notification.objects.count(), 0)

    def test_unknown_branch_selector_is_rejected(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(self.list_url, notice_payload(targetAudience={'branches': ['XYZ']}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Notice.objects.count(), 0)

    def test_student_cannot_create(self):
        self.client.force_authenticate(user=self.cse1)
        response = self.client.post(self.list_url, notice_payload())

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(Notice.objects.count(), 0)

    def test_anonymous_cannot_create(self):
        response = self.client.post(self.list_url, notice_payload())

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Notice.objects.count(), 0)

    def test_fanout_failure_does_not_fail_creation(self):
        self.client.force_authenticate(user=self.teacher)
        with patch.object(Notification.objects, 'bulk_create', side_effect=DatabaseError('insert failed')):
            with self.assertLogs('apps.notifications.services', level='ERROR'):
                response = self.client.post(self.list_url, notice_payload())

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Notice.objects.get().is_published)
        self.assertEqual(Notification.objects.count(), 0)


class ListNoticeTests(NoticeTestCase):
    def test_pagination_reports_pages_and_remainder(self):
        for i in range(25):
            self.create_notice(title=f'Notice {i}')

        response = self.client.get(self.list_url, {'limit': 10, 'page': 3})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 25)
        self.assertEqual(response.data['totalPages'], 3)
        self.assertEqual(response.data['page'], 3)
        self.assertEqual(response.data['count'], 5)
        self.assertEqual(len(response.data['data']), 5)

    def test_defaults_to_first_page_of_ten_newest_first(self):
        for i in range(12):
            self.create_notice(title=f'Notice {i}')

        response = self.client.get(self.list_url)

        self.assertEqual(response.data['page'], 1)
        self.assertEqual(response.data['count'], 10)
        self.assertEqual(response.data['totalPages'], 2)
        self.assertEqual(response.data['data'][0]['title'], 'Notice 11')

    def test_listing_is_public(self):
        self.create_notice()
        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['total'], 1)

    def test_search_matches_title_or_content_case_insensitively(self):
        self.create_notice(title='Exam timetable', category='Academic')
        self.create_notice(title='Annual fest', content='No classes during the final EXAM week', category='Event')
        self.create_notice(title='Sports day', content='Bring your kit', category='Academic')

        response = self.client.get(self.list_url, {'search': 'exam'})
        self.assertEqual({n['title'] for n in response.data['data']}, {'Exam timetable', 'Annual fest'})

        response = self.client.get(self.list_url, {'search': 'exam', 'category': 'Academic'})
        self.assertEqual([n['title'] for n in response.data['data']], ['Exam timetable'])

    def test_filters_by_branch_year_and_teacher(self):
        self.create_notice(title='CSE first years', branch='CSE', year=1)
        self.create_notice(title='CSE second years', branch='CSE', year=2)
        self.create_notice(title='ECE by teacher B', branch='ECE', year=1, author=self.other_teacher)

        response = self.client.get(self.list_url, {'branch': 'CSE', 'year': 2})
        self.assertEqual([n['title'] for n in response.data['data']], ['CSE second years'])

        response = self.client.get(self.list_url, {'teacher': self.other_teacher.id})
        self.assertEqual([n['title'] for n in response.data['data']], ['ECE by teacher B'])

    def test_invalid_paging_values_are_rejected(self):
        response = self.client.get(self.list_url, {'page': 0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

        response = self.client.get(self.list_url, {'limit': 'ten'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class NoticeDetailTests(NoticeTestCase):
    def test_get_returns_notice_with_author_name(self):
        notice = self.create_notice()
        response = self.client.get(self.detail_url(notice.id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['title'], 'Library closed')
        self.assertEqual(response.data['data']['author'], {'id': self.teacher.id, 'name': 'Anita Rao'})

    def test_get_counts_views(self):
        notice = self.create_notice()
        self.client.get(self.detail_url(notice.id))
        response = self.client.get(self.detail_url(notice.id))

        self.assertEqual(response.data['data']['views'], 2)

    def test_get_missing_notice_is_404(self):
        response = self.client.get(self.detail_url(9999))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'success': False, 'error': 'Notice not found'})

    def test_non_numeric_and_out_of_range_ids_are_404(self):
        for notice_id in ['abc', '0', str(2 ** 70)]:
            response = self.client.get(self.detail_url(notice_id))

            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
            self.assertEqual(response.data, {'success': False, 'error': 'Notice not found'})

        self.client.force_authenticate(user=self.teacher)
        response = self.client.delete(self.detail_url('abc'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])


class UpdateNoticeTests(NoticeTestCase):
    def test_publish_transition_notifies_exactly_once(self):
        notice = self.create_notice(is_published=False, scheduled_for=timezone.now() + timedelta(days=3))
        self.client.force_authenticate(user=self.teacher)

        response = self.client.put(self.detail_url(notice.id), {'isPublished': True})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['isPublished'])
        self.assertEqual(Notification.objects.count(), 4)

        response = self.client.put(self.detail_url(notice.id), {'isPublished': True, 'title': 'Library closed (updated)'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['title'], 'Library closed (updated)')
        self.assertEqual(Notification.objects.count(), 4)

    def test_update_without_publishing_sends_nothing(self):
        notice = self.create_notice(is_published=False)
        self.client.force_authenticate(user=self.teacher)

        response = self.client.put(self.detail_url(notice.id), {'priority': 'Urgent'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['priority'], 'Urgent')
        self.assertFalse(response.data['data']['isPublished'])
        self.assertEqual(Notification.objects.count(), 0)

    def test_other_teacher_gets_403_and_notice_is_unchanged(self):
        notice = self.create_notice()
        self.client.force_authenticate(user=self.other_teacher)

        response = self.client.put(self.detail_url(notice.id), {'title': 'Hijacked'})

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data, {'success': False, 'error': 'Not authorized to update this notice'})
        notice.refresh_from_db()
        self.assertEqual(notice.title, 'Library closed')

    def test_admin_can_update_any_notice(self):
        notice = self.create_notice()
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(self.detail_url(notice.id), {'category': 'Important'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        notice.refresh_from_db()
        self.assertEqual(notice.category, 'Important')

    def test_update_is_revalidated(self):
        notice = self.create_notice()
        self.client.force_authenticate(user=self.teacher)

        response = self.client.put(self.detail_url(notice.id), {'title': 'x' * 101})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        notice.refresh_from_db()
        self.assertEqual(notice.title, 'Library closed')

    def test_update_missing_notice_is_404(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.put(self.detail_url(9999), {'title': 'Nothing here'})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unpublished_notice_can_be_published_by_service_once(self):
        notice = self.create_notice(is_published=False, target_audience={'branches': ['ME']})

        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)
        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)

        self.assertEqual(self.notified_users(), {'me3'})
        self.assertEqual(Notification.objects.count(), 1)

    def test_publish_from_stale_copy_does_not_notify_twice(self):
        notice = self.create_notice(is_published=False)
        stale = Notice.objects.get(pk=notice.pk)

        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)
        self.assertEqual(Notification.objects.count(), 4)

        # second request loaded the row before the first one published it
        with patch.object(NoticeService, '_get_owned_notice', return_value=stale):
            updated = NoticeService.update(notice.id, {'isPublished': True, 'title': 'Library closed today'},
                                           self.teacher)

        self.assertTrue(updated.is_published)
        self.assertEqual(updated.title, 'Library closed today')
        self.assertEqual(Notification.objects.count(), 4)

    def test_edit_from_stale_copy_only_writes_supplied_fields(self):
        notice = self.create_notice(is_published=False)
        stale = Notice.objects.get(pk=notice.pk)

        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)
        NoticeService.get_notice(notice.id)
        NoticeService.get_notice(notice.id)

        with patch.object(NoticeService, '_get_owned_notice', return_value=stale):
            NoticeService.update(notice.id, {'priority': 'Low'}, self.teacher)

        notice.refresh_from_db()
        self.assertEqual(notice.priority, 'Low')
        self.assertTrue(notice.is_published)
        self.assertEqual(notice.views, 2)
        self.assertEqual(Notification.objects.count(), 4)

    def test_unpublish_then_republish_notifies_again(self):
        notice = self.create_notice(is_published=False, target_audience={'branches': ['ECE']})

        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)
        NoticeService.update(notice.id, {'isPublished': False}, self.teacher)
        notice.refresh_from_db()
        self.assertFalse(notice.is_published)

        NoticeService.update(notice.id, {'isPublished': True}, self.teacher)
        self.assertEqual(Notification.objects.filter(recipient=self.ece1).count(), 2)


class DeleteNoticeTests(NoticeTestCase):
    def test_owner_deletes_and_notifications_remain(self):
        self.client.force_authenticate(user=self.teacher)
        self.client.post(self.list_url, notice_payload())
        notice = Notice.objects.get()

        response = self.client.delete(self.detail_url(notice.id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True, 'data': {}})
        self.assertFalse(Notice.objects.exists())
        self.assertEqual(Notification.objects.count(), 4)

    def test_non_owner_cannot_delete(self):
        notice = self.create_notice()
        self.client.force_authenticate(user=self.other_teacher)

        response = self.client.delete(self.detail_url(notice.id))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Not authorized to delete this notice')
        self.assertTrue(Notice.objects.filter(pk=notice.pk).exists())

    def test_admin_can_delete(self):
        notice = self.create_notice()
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(self.detail_url(notice.id))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Notice.objects.exists())

    def test_delete_missing_notice_is_404(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.delete(self.detail_url(9999))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class NoticeStatsTests(NoticeTestCase):
    def set_created(self, notice, year, month):
        Notice.objects.filter(pk=notice.pk).update(
            created_at=datetime(year, month, 15, 12, 0, tzinfo=dt_timezone.utc)
        )

    def test_stats_group_own_notices(self):
        a = self.create_notice(category='Academic', priority='High', views=5)
        b = self.create_notice(category='Academic', priority='Low', views=3)
        c = self.create_notice(category='Event', priority='High', views=1)
        self.create_notice(category='Event', author=self.other_teacher, views=50)
        self.set_created(a, 2025, 3)
        self.set_created(b, 2025, 1)
        self.set_created(c, 2024, 11)

        stats = NoticeStatsService.get_stats(self.teacher)

        self.assertEqual(stats['categoryStats'], [
            {'category': 'Academic', 'count': 2, 'totalViews': 8},
            {'category': 'Event', 'count': 1, 'totalViews': 1},
        ])
        self.assertEqual(
            {row['priority']: row['count'] for row in stats['priorityStats']},
            {'High': 2, 'Low': 1}
        )
        self.assertEqual(stats['monthlyStats'], [
            {'year': 2024, 'month': 11, 'count': 1},
            {'year': 2025, 'month': 1, 'count': 1},
            {'year': 2025, 'month': 3, 'count': 1},
        ])

    def test_stats_endpoint_requires_teacher(self):
        url = reverse('notices:stats')

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.force_authenticate(user=self.cse1)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        self.create_notice()
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data['data']), {'categoryStats', 'priorityStats', 'monthlyStats'})
        self.assertEqual(response.data['data']['categoryStats'][0]['count'], 1)
