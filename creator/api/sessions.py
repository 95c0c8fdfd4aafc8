"""
Creator API – Session administration (cancellation).
"""
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from core.permissions import require_perm
from core.services import sessions as session_service
from core.utils.audit import log_action
from core.utils.http import api_view_errors, parse_json_body, validated
from creator.forms import CancelSessionForm


@login_required
@require_POST
@api_view_errors
def cancel_session(request):
    """
    POST /api/creator/exam-sessions/cancel

    Only superusers or users with core.can_cancel_session permission.
    """
    require_perm(request.user, 'core.can_cancel_session', 'cancel exam sessions')
    data, err = parse_json_body(request)
    if err:
        return err
    cleaned = validated(CancelSessionForm(data))

    session = session_service.cancel_session(
        cleaned['schedule_id'], cleaned['center_id'],
        reason=cleaned['reason'], user=request.user,
    )

    log_action(request, 'CANCEL', 'ExamSession', session.id,
               f'Cancelled sitting at center {session.center_id}',
               extra_data={'reason': cleaned['reason']})
    return JsonResponse(session.to_dict())
