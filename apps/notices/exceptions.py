from rest_framework.exceptions import NotFound, PermissionDenied


class NoticeNotFound(NotFound):
    default_detail = 'Notice not found'
    default_code = 'notice_not_found'


class NoticeAuthorizationError(PermissionDenied):
    default_detail = 'Not authorized to modify this notice'
    default_code = 'notice_not_owned'
