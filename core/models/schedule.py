"""
ExamSchedule model – one planned sitting of a subject in an exam year.
"""
import uuid

from django.core.exceptions import ValidationError
from django.db import models

from core import compliance
from .mixins import TimestampMixin


class ExamSchedule(TimestampMixin):
    """A timetabled (exam year, grade, subject) sitting, independent of center."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exam_year = models.ForeignKey(
        'core.ExamYear', on_delete=models.PROTECT, related_name='schedules', db_index=True
    )
    subject = models.ForeignKey(
        'core.Subject', on_delete=models.PROTECT, related_name='schedules', db_index=True
    )
    grade = models.IntegerField()

    exam_date = models.DateField()
    scheduled_start_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField()
    # Always start + duration; recomputed on every save
    scheduled_end_time = models.TimeField(editable=False)

    venue = models.CharField(max_length=255, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    is_published = models.BooleanField(default=False, db_index=True)
    published_at = models.DateTimeField(null=True, blank=True)
    created_by = models.IntegerField(null=True, blank=True)

    TIMING_FIELDS = ('exam_date', 'scheduled_start_time', 'duration_minutes')

    class Meta:
        db_table = 'exam_schedules'
        ordering = ['exam_date', 'scheduled_start_time', 'created_at']
        indexes = [
            models.Index(fields=['exam_year', 'grade'], name='idx_schedule_year_grade'),
            models.Index(fields=['exam_year', 'exam_date'], name='idx_schedule_year_date'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(duration_minutes__gt=0),
                name='schedule_duration_positive',
            ),
        ]
        permissions = [
            ('can_publish_schedule', 'Can publish exam schedules'),
            ('can_unpublish_schedule', 'Can unpublish exam schedules with no sessions'),
        ]

    def __str__(self):
        return f'{self.subject} on {self.exam_date} at {self.scheduled_start_time:%H:%M}'

    def clean(self):
        """Run the registry's timing and subject/grade rules for admin edits."""
        from core.catalog import ModelCatalog
        from core.exceptions import SchedulingError
        from core.services.schedules import validate_subject_grade, validate_timing

        if not self._state.adding and self.is_published:
            # Timing and subject fields are frozen once published
            stored = ExamSchedule.objects.filter(pk=self.pk).values(*self.TIMING_FIELDS).first()
            if stored and any(stored[f] != getattr(self, f) for f in self.TIMING_FIELDS):
                raise ValidationError('Published schedules cannot be re-timed; unpublish first.')
            return

        errors = {}
        if self.scheduled_start_time is not None and self.duration_minutes is not None:
            try:
                validate_timing(self.scheduled_start_time, self.duration_minutes)
            except SchedulingError as exc:
                errors['duration_minutes'] = exc.message
        if self.subject_id is not None and self.grade is not None:
            try:
                validate_subject_grade(ModelCatalog(), self.subject_id, self.grade)
            except SchedulingError as exc:
                errors['grade'] = exc.message
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.scheduled_end_time = compliance.compute_end_time(
            self.scheduled_start_time, self.duration_minutes
        )
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'scheduled_end_time' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['scheduled_end_time']
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Comparison instants
    # ------------------------------------------------------------------
    @property
    def scheduled_start_at(self):
        return compliance.scheduled_instant(self.exam_date, self.scheduled_start_time)

    @property
    def scheduled_end_at(self):
        return compliance.scheduled_end_instant(
            self.exam_date, self.scheduled_start_time, self.duration_minutes
        )

    @property
    def has_sessions(self):
        return self.sessions.exists()

    def to_dict(self):
        return {
            'id': str(self.id),
            'exam_year_id': self.exam_year_id,
            'subject_id': self.subject_id,
            'subject_name': self.subject.name if self.subject_id else None,
            'grade': self.grade,
            'exam_date': self.exam_date.isoformat(),
            'scheduled_start_time': self.scheduled_start_time.strftime('%H:%M'),
            'scheduled_end_time': self.scheduled_end_time.strftime('%H:%M'),
            'duration_minutes': self.duration_minutes,
            'venue': self.venue,
            'notes': self.notes,
            'is_published': self.is_published,
            'published_at': self.published_at.isoformat() if self.published_at else None,
        }
