import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def flatten_errors(detail, prefix=''):
    """Turn a DRF error detail (dict/list/str) into "field: message" strings"""
    if isinstance(detail, dict):
        messages = []
        for key, value in detail.items():
            if key == 'non_field_errors':
                name = prefix
            else:
                name = f"{prefix}.{key}" if prefix else str(key)
            messages.extend(flatten_errors(value, name))
        return messages
    if isinstance(detail, (list, tuple)):
        messages = []
        for item in detail:
            messages.extend(flatten_errors(item, prefix))
        return messages
    return [f"{prefix}: {detail}" if prefix else str(detail)]


def api_exception_handler(exc, context):
    """
    Every API error leaves as {"success": false, "error": "<message>"}.
    Anything DRF doesn't know about is logged and reported as a 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response({
            'success': False,
            'error': 'Server Error'
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, ValidationError):
        response.data = {
            'success': False,
            'error': '; '.join(flatten_errors(exc.detail)),
            'errors': exc.detail,
        }
    else:
        detail = getattr(exc, 'detail', str(exc))
        response.data = {
            'success': False,
            'error': '; '.join(flatten_errors(detail)),
        }
    return response
