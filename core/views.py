"""
Core views – login and logout for HQ and center staff.
"""
import logging

from axes.decorators import axes_dispatch
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.shortcuts import redirect, render
from django.views.decorators.cache import never_cache

from core.permissions import is_hq
from core.utils.audit import get_client_ip, log_action

logger = logging.getLogger(__name__)


def _redirect_by_role(user):
    """HQ lands on the monitoring API, center staff on the published timetable."""
    if is_hq(user):
        return redirect('creator_api:list_schedules')
    return redirect('fieldops_api:published_schedules')


@axes_dispatch
@never_cache
def login_view(request):
    if request.user.is_authenticated:
        return _redirect_by_role(request.user)

    if request.method == 'POST':
        username = request.POST.get('username', '').strip()
        password = request.POST.get('password', '')

        if not username or not password:
            messages.error(request, 'Please provide both username and password.')
            return render(request, 'login.html', status=400)

        user = authenticate(request, username=username, password=password)
        if user is not None:
            login(request, user)
            logger.info(
                "User '%s' logged in from IP %s.", user.username, get_client_ip(request),
            )
            log_action(request, 'LOGIN', 'User', user.pk, f'{user.username} logged in')
            return _redirect_by_role(user)

        messages.error(request, 'Invalid username or password.')

    return render(request, 'login.html')


def logout_view(request):
    if request.user.is_authenticated:
        log_action(request, 'LOGOUT', 'User', request.user.pk,
                   f'{request.user.username} logged out')
    logout(request)
    messages.info(request, 'You have been logged out.')
    return redirect('login')
