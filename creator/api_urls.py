"""Creator API URLs – HQ timetable and monitoring endpoints under /api/creator/."""
from django.urls import path

from .api import monitoring, schedules, sessions

app_name = 'creator_api'

urlpatterns = [
    # ── Exam schedules ───────────────────────────────────────────────────────
    path('exam-schedules', schedules.schedules, name='list_schedules'),
    path('exam-schedules/<uuid:schedule_id>', schedules.schedule_detail, name='schedule_detail'),
    path('exam-schedules/<uuid:schedule_id>/publish', schedules.publish_schedule, name='publish_schedule'),
    path('exam-schedules/<uuid:schedule_id>/unpublish', schedules.unpublish_schedule, name='unpublish_schedule'),

    # ── Sessions ─────────────────────────────────────────────────────────────
    path('exam-sessions/cancel', sessions.cancel_session, name='cancel_session'),

    # ── Monitoring ───────────────────────────────────────────────────────────
    path('exam-scheduling/monitoring', monitoring.get_monitoring, name='monitoring'),
    path('exam-scheduling/monitoring/xlsx', monitoring.export_monitoring_xlsx, name='monitoring_xlsx'),
]
