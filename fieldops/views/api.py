"""
Field API views – JSON endpoints used by exam center staff to report when
a sitting actually started and ended.
"""
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from core.permissions import require_center_access
from core.services import schedules as schedule_service
from core.services import sessions as session_service
from core.utils.audit import log_action
from core.utils.http import (
    api_view_errors, date_param, int_param, parse_json_body, validated,
)
from fieldops.forms import RecordEndForm, RecordStartForm


# ── Timetable ──────────────────────────────────────────────────────

@login_required
@require_GET
@api_view_errors
def published_schedules(request):
    """Published timetable for an exam year; drafts are never visible here."""
    qs = schedule_service.list_schedules(
        int_param(request, 'exam_year_id', required=True),
        grade=int_param(request, 'grade'),
        exam_date=date_param(request, 'exam_date'),
        published_only=True,
    )
    return JsonResponse([s.to_dict() for s in qs.iterator()], safe=False)


# ── Session reporting ──────────────────────────────────────────────

@login_required
@csrf_exempt
@require_POST
@api_view_errors
def record_start(request):
    """POST /api/field/exam-sessions/record-start"""
    data, err = parse_json_body(request)
    if err:
        return err
    cleaned = validated(RecordStartForm(data))
    require_center_access(request.user, cleaned['center_id'])

    session = session_service.record_start(
        cleaned['schedule_id'],
        cleaned['center_id'],
        cleaned['actual_start_time'] or timezone.now(),
        candidate_count=cleaned['candidate_count'],
        late_start_reason_code=cleaned['late_start_reason_code'],
        late_start_reason_details=cleaned['late_start_reason_details'],
        notes=cleaned['notes'],
        user=request.user,
    )

    log_action(request, 'START', 'ExamSession', session.id,
               f'Recorded start at center {session.center_id} ({session.status})',
               extra_data={'late_start_minutes': session.late_start_minutes})
    return JsonResponse(session.to_dict(), status=201)


@login_required
@csrf_exempt
@require_POST
@api_view_errors
def record_end(request, session_id):
    """POST /api/field/exam-sessions/<id>/record-end"""
    data, err = parse_json_body(request)
    if err:
        return err
    cleaned = validated(RecordEndForm(data))
    existing = session_service.get_session(session_id)
    require_center_access(request.user, existing.center_id)

    session = session_service.record_end(
        session_id,
        cleaned['actual_end_time'] or timezone.now(),
        notes=cleaned['notes'] or None,
        user=request.user,
    )

    log_action(request, 'END', 'ExamSession', session.id,
               f'Recorded end at center {session.center_id} ({session.end_status})',
               extra_data={'late_end_minutes': session.late_end_minutes})
    return JsonResponse(session.to_dict())


@login_required
@require_GET
@api_view_errors
def session_detail(request, session_id):
    session = session_service.get_session(session_id)
    require_center_access(request.user, session.center_id)
    data = session.to_dict()
    data['schedule'] = session.schedule.to_dict()
    data['center'] = {'id': session.center_id, 'name': session.center.name}
    return JsonResponse(data)
