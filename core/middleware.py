"""
Access middleware for the exam portal.
"""
from django.http import JsonResponse

from core.permissions import is_hq


class RoleBasedAccessMiddleware:
    """
    Keeps non-HQ users out of the timetable management API:
        superuser / super_admin / examination_admin -> /api/creator/ and /api/field/
        center_admin / examiner                    -> /api/field/ only

    Anonymous requests pass through so login_required can redirect them.
    """

    HQ_PREFIX = '/api/creator/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if (
            request.path.startswith(self.HQ_PREFIX)
            and request.user.is_authenticated
            and not is_hq(request.user)
        ):
            return JsonResponse(
                {'error': 'Timetable management is restricted to examination HQ.',
                 'code': 'forbidden'},
                status=403,
            )
        return self.get_response(request)


class SessionTimeoutMiddleware:
    """
    Sets different session timeouts based on interface:
    - HQ API: 15 minutes from last activity
    - Field API: 2 hours from last activity
    """

    CREATOR_TIMEOUT = 900
    FIELD_TIMEOUT = 7200

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.user.is_authenticated:
            if request.path.startswith('/api/creator/'):
                request.session.set_expiry(self.CREATOR_TIMEOUT)
            elif request.path.startswith('/api/field/'):
                request.session.set_expiry(self.FIELD_TIMEOUT)

        return self.get_response(request)
