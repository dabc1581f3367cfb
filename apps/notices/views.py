from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework import status
from .permissions import IsTeacherOrAdmin, IsTeacherOrAdminOrReadOnly
from .serializers import NoticeSerializer
from .services import NoticeService, NoticeStatsService

@api_view(['GET', 'POST'])
@permission_classes([IsTeacherOrAdminOrReadOnly])
def notices_list_create(request):
    """
    GET: List notices (public), filtered and paginated
    POST: Create a new notice (teacher/admin only)
    """
    if request.method == 'GET':
        page = NoticeService.list_notices(request.query_params)
        return Response({
            'success': True,
            'count': page.count,
            'total': page.total,
            'totalPages': page.total_pages,
            'page': page.page,
            'data': NoticeSerializer(page.items, many=True).data,
        })

    notice = NoticeService.create(request.data, request.user)
    return Response({
        'success': True,
        'data': NoticeSerializer(notice).data
    }, status=status.HTTP_201_CREATED)

@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsTeacherOrAdminOrReadOnly])
def notice_detail(request, notice_id):
    """
    GET: Single notice with its author
    PUT/PATCH: Update a notice (author or admin)
    DELETE: Delete a notice (author or admin)
    """
    if request.method == 'GET':
        notice = NoticeService.get_notice(notice_id)
        return Response({'success': True, 'data': NoticeSerializer(notice).data})

    if request.method == 'DELETE':
        NoticeService.delete(notice_id, request.user)
        return Response({'success': True, 'data': {}})

    notice = NoticeService.update(notice_id, request.data, request.user)
    return Response({'success': True, 'data': NoticeSerializer(notice).data})

@api_view(['GET'])
@permission_classes([IsTeacherOrAdmin])
def notice_stats(request):
    """Category, priority and monthly counts for the current teacher's notices"""
    return Response({
        'success': True,
        'data': NoticeStatsService.get_stats(request.user)
    })
