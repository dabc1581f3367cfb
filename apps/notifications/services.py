import logging
from collections import namedtuple

from django.db import transaction

from apps.users.models import User
from .models import Notification

logger = logging.getLogger(__name__)

FanoutResult = namedtuple('FanoutResult', ['notice_id', 'delivered', 'error'])


class NotificationFanout:
    """Writes one notification per student targeted by a published notice"""

    @staticmethod
    def recipients_for(notice):
        """Students matching the notice's branch/year selectors"""
        students = User.objects.filter(role='student')

        branches = notice.target_branches()
        if branches is not None:
            students = students.filter(branch__in=branches)

        years = notice.target_years()
        if years is not None:
            students = students.filter(year__in=years)

        return students

    @staticmethod
    def build_notification(notice, recipient_id):
        return Notification(
            recipient_id=recipient_id,
            type='notice_posted',
            title='New Notice',
            message=notice.title,
            data={
                'noticeId': notice.id,
                'category': notice.category,
                'priority': notice.priority,
            }
        )

    @staticmethod
    def deliver(notice):
        """
        Best effort: failures are logged and reported in the result,
        never raised to the caller.
        """
        try:
            with transaction.atomic():
                recipient_ids = NotificationFanout.recipients_for(notice).values_list('id', flat=True)
                notifications = [
                    NotificationFanout.build_notification(notice, recipient_id)
                    for recipient_id in recipient_ids
                ]
                Notification.objects.bulk_create(notifications)
        except Exception as e:
            logger.exception(f"Error creating notifications for notice {notice.id}: {e}")
            return FanoutResult(notice.id, 0, str(e))

        logger.info(f"Notice {notice.id} fanned out to {len(notifications)} students")
        return FanoutResult(notice.id, len(notifications), None)
