# apps/notifications/views.py
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from .models import Notification

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_notifications(request):
    """List notifications delivered to the current user, newest first"""
    notifications = Notification.objects.filter(recipient=request.user)
    data = [{
        'id': n.id,
        'type': n.type,
        'title': n.title,
        'message': n.message,
        'data': n.data,
        'created_at': n.created_at.strftime('%Y-%m-%d %H:%M'),
    } for n in notifications]
    return Response({'success': True, 'count': len(data), 'data': data})
