import logging
import math
from collections import namedtuple

from django.conf import settings
from django.db.models import Count, F, Q, Sum
from django.db.models.functions import ExtractMonth, ExtractYear
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from apps.notifications.services import NotificationFanout
from .exceptions import NoticeAuthorizationError, NoticeNotFound
from .models import Notice
from .serializers import NoticeSerializer

logger = logging.getLogger(__name__)

# BigAutoField upper bound
MAX_NOTICE_ID = 2 ** 63 - 1

NoticePage = namedtuple('NoticePage', ['items', 'count', 'total', 'total_pages', 'page'])


def _positive_int(params, name, default=None):
    raw = params.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: f'{name} must be an integer'})
    if value < 1:
        raise ValidationError({name: f'{name} must be at least 1'})
    return value


def _notice_pk(notice_id):
    """Anything that can't be a stored primary key is simply not found"""
    try:
        pk = int(notice_id)
    except (TypeError, ValueError):
        raise NoticeNotFound()
    if pk < 1 or pk > MAX_NOTICE_ID:
        raise NoticeNotFound()
    return pk


class NoticeService:
    """Create/list/update/delete notices and trigger fan-out on publish"""

    @staticmethod
    def create(payload, acting_user):
        serializer = NoticeSerializer(data=payload)
        serializer.is_valid(raise_exception=True)

        # Publishing state is decided here, not by the client
        serializer.validated_data.pop('is_published', None)
        scheduled_for = serializer.validated_data.get('scheduled_for')
        notice = serializer.save(author=acting_user, is_published=scheduled_for is None)
        logger.info(f"Notice {notice.id} created by user {acting_user.id} (published={notice.is_published})")

        if notice.is_published:
            NotificationFanout.deliver(notice)
        return notice

    @staticmethod
    def list_notices(params):
        """
        Filter by category, branch, year, teacher and a title/content search.
        Returns one page, newest first.
        """
        page = _positive_int(params, 'page', 1)
        limit = _positive_int(params, 'limit', settings.NOTICES_PAGE_SIZE)

        notices = Notice.objects.select_related('author')

        category = params.get('category')
        if category:
            notices = notices.filter(category=category)

        branch = params.get('branch')
        if branch:
            notices = notices.filter(branch=branch)

        year = _positive_int(params, 'year')
        if year:
            notices = notices.filter(year=year)

        teacher = _positive_int(params, 'teacher')
        if teacher:
            notices = notices.filter(author_id=teacher)

        search = params.get('search')
        if search:
            notices = notices.filter(Q(title__icontains=search) | Q(content__icontains=search))

        notices = notices.order_by('-created_at', '-id')
        total = notices.count()
        offset = (page - 1) * limit
        items = list(notices[offset:offset + limit])

        return NoticePage(
            items=items,
            count=len(items),
            total=total,
            total_pages=math.ceil(total / limit),
            page=page,
        )

    @staticmethod
    def get_notice(notice_id):
        notice_id = _notice_pk(notice_id)
        updated = Notice.objects.filter(pk=notice_id).update(views=F('views') + 1)
        if not updated:
            raise NoticeNotFound()
        return Notice.objects.select_related('author').get(pk=notice_id)

    @staticmethod
    def _get_owned_notice(notice_id, acting_user, action):
        try:
            notice = Notice.objects.select_related('author').get(pk=_notice_pk(notice_id))
        except Notice.DoesNotExist:
            raise NoticeNotFound()

        if not notice.can_be_modified_by(acting_user):
            logger.warning(f"User {acting_user.id} tried to {action} notice {notice.id} owned by {notice.author_id}")
            raise NoticeAuthorizationError(f'Not authorized to {action} this notice')
        return notice

    @staticmethod
    def update(notice_id, payload, acting_user):
        notice = NoticeService._get_owned_notice(notice_id, acting_user, 'update')

        serializer = NoticeSerializer(notice, data=payload, partial=True)
        serializer.is_valid(raise_exception=True)

        # Write only the supplied columns so a stale copy can't undo other writes
        changes = dict(serializer.validated_data)
        publish = changes.pop('is_published', None)
        if publish is False:
            changes['is_published'] = False
        if changes:
            Notice.objects.filter(pk=notice.pk).update(updated_at=timezone.now(), **changes)

        if publish:
            # Only the request that flips the flag fans out
            claimed = Notice.objects.filter(pk=notice.pk, is_published=False).update(
                is_published=True, updated_at=timezone.now()
            )
            if claimed:
                notice.refresh_from_db()
                logger.info(f"Notice {notice.id} published by user {acting_user.id}")
                NotificationFanout.deliver(notice)

        notice.refresh_from_db()
        logger.info(f"Notice {notice.id} updated by user {acting_user.id}")
        return notice

    @staticmethod
    def delete(notice_id, acting_user):
        notice = NoticeService._get_owned_notice(notice_id, acting_user, 'delete')
        notice.delete()
        logger.info(f"Notice {notice_id} deleted by user {acting_user.id}")


class NoticeStatsService:
    """Grouped counts over the notices a user has authored"""

    @staticmethod
    def get_stats(user):
        notices = Notice.objects.filter(author=user)

        category_stats = notices.values('category').annotate(
            count=Count('id'),
            totalViews=Sum('views'),
        ).order_by('-count', 'category')

        priority_stats = notices.values('priority').annotate(
            count=Count('id'),
        ).order_by('-count', 'priority')

        monthly_stats = notices.annotate(
            year_created=ExtractYear('created_at'),
            month_created=ExtractMonth('created_at'),
        ).values('year_created', 'month_created').annotate(
            count=Count('id'),
        ).order_by('year_created', 'month_created')

        return {
            'categoryStats': [
                {'category': row['category'], 'count': row['count'], 'totalViews': row['totalViews'] or 0}
                for row in category_stats
            ],
            'priorityStats': [
                {'priority': row['priority'], 'count': row['count']}
                for row in priority_stats
            ],
            'monthlyStats': [
                {'year': row['year_created'], 'month': row['month_created'], 'count': row['count']}
                for row in monthly_stats
            ],
        }
