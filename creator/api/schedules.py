"""
Creator API – Exam schedule endpoints (list, create, update, delete, publish, unpublish).
"""
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods, require_POST

from core.permissions import require_hq, require_perm
from core.services import schedules as schedule_service
from core.utils.audit import log_action
from core.utils.http import (
    api_view_errors, date_param, int_param, parse_json_body, validated,
)
from creator.forms import ScheduleForm


@login_required
@require_http_methods(['GET', 'POST'])
@api_view_errors
def schedules(request):
    """
    GET  /api/creator/exam-schedules?exam_year_id=&grade=&exam_date=
    POST /api/creator/exam-schedules
    """
    if request.method == 'POST':
        return _create_schedule(request)

    qs = schedule_service.list_schedules(
        int_param(request, 'exam_year_id', required=True),
        grade=int_param(request, 'grade'),
        exam_date=date_param(request, 'exam_date'),
    )
    return JsonResponse([s.to_dict() for s in qs.iterator()], safe=False)


def _create_schedule(request):
    require_hq(request.user, 'create exam schedules')
    data, err = parse_json_body(request)
    if err:
        return err

    cleaned = validated(ScheduleForm(data))
    schedule = schedule_service.create_schedule(user=request.user, **cleaned)

    log_action(request, 'CREATE', 'ExamSchedule', schedule.id,
               f'Scheduled {schedule.subject.name} on {schedule.exam_date}')
    return JsonResponse(schedule.to_dict(), status=201)


@login_required
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@api_view_errors
def schedule_detail(request, schedule_id):
    """
    GET    /api/creator/exam-schedules/<id>
    PATCH  /api/creator/exam-schedules/<id>   (drafts only)
    DELETE /api/creator/exam-schedules/<id>   (drafts with no sessions only)
    """
    if request.method == 'GET':
        schedule = schedule_service.get_schedule(schedule_id)
        data = schedule.to_dict()
        data['session_count'] = schedule.sessions.count()
        return JsonResponse(data)

    if request.method == 'DELETE':
        require_hq(request.user, 'delete exam schedules')
        schedule_service.delete_schedule(schedule_id, user=request.user)
        log_action(request, 'DELETE', 'ExamSchedule', schedule_id, 'Deleted draft schedule')
        return JsonResponse({'message': 'Exam schedule deleted', 'id': str(schedule_id)})

    require_hq(request.user, 'update exam schedules')
    data, err = parse_json_body(request)
    if err:
        return err
    form = ScheduleForm(data, partial=True)
    validated(form)
    changes = form.changed_values()
    schedule = schedule_service.update_schedule(schedule_id, changes, user=request.user)

    log_action(request, 'UPDATE', 'ExamSchedule', schedule.id,
               'Updated draft schedule', extra_data={'fields': sorted(changes)})
    return JsonResponse(schedule.to_dict())


@login_required
@require_POST
@api_view_errors
def publish_schedule(request, schedule_id):
    """POST /api/creator/exam-schedules/<id>/publish"""
    require_hq(request.user, 'publish exam schedules')
    schedule = schedule_service.publish_schedule(schedule_id, user=request.user)
    log_action(request, 'PUBLISH', 'ExamSchedule', schedule.id, 'Published schedule')
    return JsonResponse(schedule.to_dict())


@login_required
@require_POST
@api_view_errors
def unpublish_schedule(request, schedule_id):
    """
    POST /api/creator/exam-schedules/<id>/unpublish

    Only superusers or users with core.can_unpublish_schedule, and only
    while no session has been recorded against the schedule.
    """
    require_perm(request.user, 'core.can_unpublish_schedule', 'unpublish exam schedules')
    schedule = schedule_service.unpublish_schedule(schedule_id, user=request.user)
    log_action(request, 'UNPUBLISH', 'ExamSchedule', schedule.id, 'Unpublished schedule')
    return JsonResponse(schedule.to_dict())
