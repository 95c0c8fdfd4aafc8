"""
ExamSession model – what actually happened for a schedule at one center.
"""
import uuid

from django.db import models
from django.db.models import F, Q

from core import compliance
from .mixins import TimestampMixin


class SessionStatus(models.TextChoices):
    STARTED_ON_TIME = compliance.STARTED_ON_TIME, 'Started On Time'
    STARTED_LATE = compliance.STARTED_LATE, 'Started Late'
    COMPLETED = compliance.COMPLETED, 'Completed'
    CANCELLED = compliance.CANCELLED, 'Cancelled'


class LateStartReason(models.TextChoices):
    TRANSPORT_DELAY = 'transport_delay', 'Transport Delay'
    WEATHER = 'weather', 'Weather Conditions'
    SECURITY_INCIDENT = 'security_incident', 'Security Incident'
    MATERIALS_LATE = 'materials_late', 'Materials Arrived Late'
    STAFF_ABSENCE = 'staff_absence', 'Staff Absence'
    TECHNICAL_ISSUE = 'technical_issue', 'Technical Issue'
    VENUE_ISSUE = 'venue_issue', 'Venue Issue'
    STUDENT_DELAY = 'student_delay', 'Student Delay'
    COMMUNICATION_GAP = 'communication_gap', 'Communication Gap'
    OTHER = 'other', 'Other'


class ExamSession(TimestampMixin):
    """
    Audit record of one sitting at one exam center.

    Created when the start is recorded (or when a not-started sitting is
    cancelled) and updated once more when the end is recorded. Never deleted.
    Lateness flags and minutes are derived from the timestamps on save.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    schedule = models.ForeignKey(
        'core.ExamSchedule', on_delete=models.PROTECT, related_name='sessions', db_index=True
    )
    center = models.ForeignKey(
        'core.ExamCenter', on_delete=models.PROTECT, related_name='sessions', db_index=True
    )

    actual_start_time = models.DateTimeField(null=True, blank=True)
    actual_end_time = models.DateTimeField(null=True, blank=True)
    candidate_count = models.PositiveIntegerField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=SessionStatus.choices, db_index=True)

    started_late = models.BooleanField(default=False)
    ended_late = models.BooleanField(default=False)
    late_start_minutes = models.PositiveIntegerField(default=0)
    late_end_minutes = models.PositiveIntegerField(default=0)

    late_start_reason_code = models.CharField(
        max_length=30, choices=LateStartReason.choices, null=True, blank=True
    )
    late_start_reason_details = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default='')
    recorded_by = models.IntegerField(null=True, blank=True)

    class Meta:
        db_table = 'exam_sessions'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['schedule', 'center'],
                name='unique_schedule_center_session'
            ),
            models.CheckConstraint(
                condition=(
                    Q(actual_start_time__isnull=True)
                    | Q(actual_end_time__isnull=True)
                    | Q(actual_end_time__gte=F('actual_start_time'))
                ),
                name='session_end_not_before_start',
            ),
        ]
        permissions = [
            ('can_cancel_session', 'Can cancel exam sessions'),
        ]

    def __str__(self):
        return f'{self.schedule} @ {self.center}'

    def save(self, *args, **kwargs):
        self.apply_classification()
        super().save(*args, **kwargs)

    def apply_classification(self):
        """Re-derive lateness from the timestamps and the schedule."""
        schedule = self.schedule
        if self.actual_start_time is None:
            self.started_late, self.late_start_minutes = False, 0
        else:
            start = compliance.classify_start(
                self.actual_start_time, schedule.exam_date, schedule.scheduled_start_time
            )
            self.started_late, self.late_start_minutes = start.late, start.minutes

        if self.actual_end_time is None:
            self.ended_late, self.late_end_minutes = False, 0
        else:
            end = compliance.classify_end(
                self.actual_end_time, schedule.exam_date,
                schedule.scheduled_start_time, schedule.duration_minutes,
            )
            self.ended_late, self.late_end_minutes = end.late, end.minutes

        if self.status == SessionStatus.CANCELLED:
            return
        if self.actual_end_time is not None:
            self.status = SessionStatus.COMPLETED
        elif self.actual_start_time is not None:
            self.status = compliance.start_status(self.started_late)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def is_cancelled(self):
        return self.status == SessionStatus.CANCELLED

    @property
    def start_status(self):
        if self.actual_start_time is None:
            return None
        return compliance.start_status(self.started_late)

    @property
    def end_status(self):
        if self.actual_end_time is None:
            return None
        return compliance.end_status(self.ended_late)

    @property
    def phase(self):
        return compliance.session_phase(
            self.actual_start_time is not None,
            self.actual_end_time is not None,
            self.is_cancelled,
        )

    def to_dict(self):
        return {
            'id': str(self.id),
            'schedule_id': str(self.schedule_id),
            'center_id': self.center_id,
            'actual_start_time': self.actual_start_time.isoformat() if self.actual_start_time else None,
            'actual_end_time': self.actual_end_time.isoformat() if self.actual_end_time else None,
            'candidate_count': self.candidate_count,
            'status': self.status,
            'phase': self.phase,
            'start_status': self.start_status,
            'end_status': self.end_status,
            'started_late': self.started_late,
            'ended_late': self.ended_late,
            'late_start_minutes': self.late_start_minutes,
            'late_end_minutes': self.late_end_minutes,
            'late_start_reason_code': self.late_start_reason_code,
            'late_start_reason_details': self.late_start_reason_details,
            'notes': self.notes,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'cancellation_reason': self.cancellation_reason,
        }
