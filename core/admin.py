"""
Django admin registration for the scheduling models.
"""
from django.contrib import admin

from core.exceptions import SchedulingError
from core.services import schedules as schedule_service

from .models import (
    AuditLog, ExamCenter, ExamSchedule, ExamSession, ExamYear, Subject, UserProfile,
)

admin.site.site_header = "Exam Portal Administration"
admin.site.site_title = "Exam Portal Administration"
admin.site.index_title = "Exam Portal Administration"


# ── Reference catalogs ───────────────────────────────────────────
@admin.register(ExamYear)
class ExamYearAdmin(admin.ModelAdmin):
    list_display = ('name', 'year', 'is_active')
    list_filter = ('is_active',)


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'grade', 'is_active')
    list_filter = ('grade', 'is_active')
    search_fields = ('code', 'name')


@admin.register(ExamCenter)
class ExamCenterAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'region', 'is_active')
    list_filter = ('region', 'is_active')
    search_fields = ('code', 'name')


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'center')
    list_filter = ('role',)
    search_fields = ('user__username',)


# ── Timetable ────────────────────────────────────────────────────
@admin.action(description='Unpublish selected schedules (no sessions only)')
def unpublish_schedules(modeladmin, request, queryset):
    """Admin action: take schedules back to draft so they can be corrected."""
    if not (request.user.is_superuser or request.user.has_perm('core.can_unpublish_schedule')):
        modeladmin.message_user(
            request,
            'You do not have permission to unpublish schedules.',
            level='error',
        )
        return

    reverted = 0
    for schedule_id in queryset.values_list('pk', flat=True):
        try:
            schedule_service.unpublish_schedule(schedule_id, user=request.user)
        except SchedulingError as exc:
            modeladmin.message_user(request, exc.message, level='warning')
            continue
        reverted += 1

    if reverted:
        modeladmin.message_user(request, f'{reverted} schedule(s) unpublished.')


@admin.register(ExamSchedule)
class ExamScheduleAdmin(admin.ModelAdmin):
    list_display = (
        'subject', 'grade', 'exam_date', 'scheduled_start_time',
        'scheduled_end_time', 'duration_minutes', 'is_published',
    )
    list_filter = ('exam_year', 'grade', 'is_published', 'exam_date')
    search_fields = ('subject__name', 'subject__code', 'venue')
    ordering = ('exam_date', 'scheduled_start_time')
    actions = [unpublish_schedules]

    def get_readonly_fields(self, request, obj=None):
        readonly = ['scheduled_end_time', 'is_published', 'published_at', 'created_by']
        if obj is not None and obj.is_published:
            readonly += ['exam_year', 'subject', 'grade', *ExamSchedule.TIMING_FIELDS]
        return readonly

    def has_delete_permission(self, request, obj=None):
        if obj is not None and (obj.is_published or obj.has_sessions):
            return False
        return super().has_delete_permission(request, obj)


# ── Sessions (read-only audit trail) ─────────────────────────────
@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = (
        'schedule', 'center', 'status', 'actual_start_time', 'actual_end_time',
        'late_start_minutes', 'late_end_minutes', 'late_start_reason_code',
    )
    list_filter = ('status', 'started_late', 'ended_late', 'late_start_reason_code')
    search_fields = ('center__name', 'schedule__subject__name')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'username', 'action', 'resource_type', 'resource_id')
    list_filter = ('action', 'resource_type')
    search_fields = ('username', 'resource_id', 'description')
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
