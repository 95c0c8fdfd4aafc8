"""
Login logging + profile provisioning for new users.

Listens to Django's user_logged_in and user_login_failed signals to log
every authentication attempt, and to post_save on the user model to give
each new user a UserProfile.
"""
import logging

from django.conf import settings
from django.contrib.auth.signals import user_logged_in, user_login_failed
from django.db.models.signals import post_save
from django.dispatch import receiver

from core.utils.audit import get_client_ip

auth_logger = logging.getLogger('portal.auth')


@receiver(user_logged_in)
def log_successful_login(sender, request, user, **kwargs):
    auth_logger.info(
        'LOGIN_SUCCESS | user=%s | ip=%s',
        getattr(user, 'username', str(user)),
        get_client_ip(request) if request else None,
    )


@receiver(user_login_failed)
def log_failed_login(sender, credentials, request=None, **kwargs):
    auth_logger.warning(
        'LOGIN_FAILED | username=%s | ip=%s',
        credentials.get('username', '<unknown>'),
        get_client_ip(request) if request else None,
    )


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def provision_new_user(sender, instance, created, **kwargs):
    """
    On user creation, create a UserProfile.

    Superusers get the super_admin role; everyone else starts as an
    examiner until an administrator assigns a role and center.
    """
    if not created:
        return

    from core.models.user_profile import UserProfile

    role = UserProfile.ROLE_SUPER_ADMIN if instance.is_superuser else UserProfile.ROLE_EXAMINER
    UserProfile.objects.get_or_create(user=instance, defaults={'role': role})
    auth_logger.info("New user '%s' provisioned with role %s.", instance.username, role)
