"""
Role checks for the scheduling APIs.

Authentication is Django's; these helpers only decide whether an
authenticated user may act.
"""
from core.exceptions import Forbidden
from core.models import UserProfile


def user_profile(user):
    return getattr(user, 'profile', None) if user is not None else None


def is_hq(user):
    """Superusers and examination-board HQ roles manage the timetable."""
    if user is None or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    profile = user_profile(user)
    return bool(profile and profile.is_hq)


def require_hq(user, action):
    if not is_hq(user):
        raise Forbidden(f'You do not have permission to {action}.')


def require_perm(user, perm, action):
    """HQ role plus an explicit Django permission (superusers pass)."""
    require_hq(user, action)
    if not (user.is_superuser or user.has_perm(perm)):
        raise Forbidden(f'You do not have permission to {action}.')


def require_center_access(user, center_id):
    """HQ may report for any center; center admins only for their own."""
    if is_hq(user):
        return
    profile = user_profile(user)
    if (
        profile is not None
        and profile.role == UserProfile.ROLE_CENTER_ADMIN
        and profile.center_id is not None
        and profile.center_id == center_id
    ):
        return
    raise Forbidden(f'You may not report sessions for center {center_id}.')
