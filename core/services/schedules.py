"""
Schedule registry – timetable creation, publishing and removal.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import ProtectedError
from django.utils import timezone

from core import compliance
from core.catalog import ModelCatalog
from core.exceptions import Conflict, NotFound, ValidationError
from core.models import ExamSchedule

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('portal.audit')

EDITABLE_FIELDS = (
    'subject_id', 'grade', 'exam_date', 'scheduled_start_time',
    'duration_minutes', 'venue', 'notes',
)
# Editable but never blank
REQUIRED_FIELDS = (
    'subject_id', 'grade', 'exam_date', 'scheduled_start_time', 'duration_minutes',
)


def _username(user):
    return getattr(user, 'username', None) or 'system'


def duration_bounds():
    return (
        getattr(settings, 'SCHEDULE_MIN_DURATION_MINUTES', 10),
        getattr(settings, 'SCHEDULE_MAX_DURATION_MINUTES', 24 * 60),
    )


def validate_timing(scheduled_start_time, duration_minutes):
    if scheduled_start_time is None:
        raise ValidationError('Scheduled start time is required.')
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError('Duration must be a whole number of minutes.')
    low, high = duration_bounds()
    if duration_minutes < low or duration_minutes > high:
        raise ValidationError(
            f'Duration must be between {low} and {high} minutes (got {duration_minutes}).'
        )
    if compliance.crosses_midnight(scheduled_start_time, duration_minutes):
        raise ValidationError(
            f'A {duration_minutes}-minute sitting starting at '
            f'{scheduled_start_time:%H:%M} would end after midnight.'
        )


def validate_subject_grade(catalog, subject_id, grade):
    subject = catalog.lookup_subject(subject_id)
    if subject is None:
        raise NotFound(f'Subject {subject_id} does not exist.')
    if subject.grade != grade:
        raise ValidationError(
            f'Subject "{subject.name}" is examined at grade {subject.grade}, not grade {grade}.'
        )
    return subject


def get_schedule(schedule_id):
    try:
        return ExamSchedule.objects.select_related('subject', 'exam_year').get(pk=schedule_id)
    except ExamSchedule.DoesNotExist:
        raise NotFound(f'Exam schedule {schedule_id} not found.')


def _locked_schedule(schedule_id):
    try:
        return ExamSchedule.objects.select_for_update().get(pk=schedule_id)
    except ExamSchedule.DoesNotExist:
        raise NotFound(f'Exam schedule {schedule_id} not found.')


def create_schedule(exam_year_id, subject_id, grade, exam_date, scheduled_start_time,
                    duration_minutes, venue='', notes='', user=None, catalog=None):
    """Create a draft schedule after checking catalog references and timing."""
    catalog = catalog or ModelCatalog()
    if catalog.lookup_exam_year(exam_year_id) is None:
        raise NotFound(f'Exam year {exam_year_id} does not exist.')
    validate_subject_grade(catalog, subject_id, grade)
    validate_timing(scheduled_start_time, duration_minutes)

    schedule = ExamSchedule.objects.create(
        exam_year_id=exam_year_id,
        subject_id=subject_id,
        grade=grade,
        exam_date=exam_date,
        scheduled_start_time=scheduled_start_time,
        duration_minutes=duration_minutes,
        venue=venue or '',
        notes=notes or '',
        created_by=getattr(user, 'pk', None),
    )
    logger.info(
        'Created draft schedule %s: subject=%s grade=%s %s %s+%smin',
        schedule.id, subject_id, grade, exam_date,
        scheduled_start_time.strftime('%H:%M'), duration_minutes,
    )
    return schedule


@transaction.atomic
def update_schedule(schedule_id, changes, user=None, catalog=None):
    """Apply field changes to a draft; published schedules must be unpublished first."""
    catalog = catalog or ModelCatalog()
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f'Cannot update field(s): {", ".join(sorted(unknown))}.')
    cleared = sorted(f for f in REQUIRED_FIELDS if f in changes and changes[f] is None)
    if cleared:
        raise ValidationError(f'Field(s) cannot be empty: {", ".join(cleared)}.')

    schedule = _locked_schedule(schedule_id)
    if schedule.is_published:
        raise Conflict(
            f'Exam schedule {schedule.id} is published; unpublish it before making corrections.'
        )

    for field, value in changes.items():
        setattr(schedule, field, '' if value is None else value)
    validate_subject_grade(catalog, schedule.subject_id, schedule.grade)
    validate_timing(schedule.scheduled_start_time, schedule.duration_minutes)
    schedule.save()

    audit_logger.info(
        'SCHEDULE_UPDATE | user=%s | schedule_id=%s | fields=%s',
        _username(user), schedule.id, ','.join(sorted(changes)),
    )
    return schedule


@transaction.atomic
def publish_schedule(schedule_id, user=None):
    schedule = _locked_schedule(schedule_id)
    if schedule.is_published:
        raise Conflict(f'Exam schedule {schedule.id} is already published.')

    schedule.is_published = True
    schedule.published_at = timezone.now()
    schedule.save(update_fields=['is_published', 'published_at'])

    audit_logger.info(
        'SCHEDULE_PUBLISH | user=%s | schedule_id=%s', _username(user), schedule.id,
    )
    return schedule


@transaction.atomic
def unpublish_schedule(schedule_id, user=None):
    """Privileged correction path; only while no session has been recorded."""
    schedule = _locked_schedule(schedule_id)
    if not schedule.is_published:
        raise Conflict(f'Exam schedule {schedule.id} is not published.')
    session_count = schedule.sessions.count()
    if session_count:
        raise Conflict(
            f'Cannot unpublish exam schedule {schedule.id}: '
            f'{session_count} session(s) already recorded.'
        )

    schedule.is_published = False
    schedule.published_at = None
    schedule.save(update_fields=['is_published', 'published_at'])

    audit_logger.warning(
        'SCHEDULE_UNPUBLISH | user=%s | schedule_id=%s', _username(user), schedule.id,
    )
    return schedule


@transaction.atomic
def delete_schedule(schedule_id, user=None):
    schedule = _locked_schedule(schedule_id)
    if schedule.is_published:
        raise Conflict(f'Cannot delete exam schedule {schedule.id}: it is published.')
    session_count = schedule.sessions.count()
    if session_count:
        raise Conflict(
            f'Cannot delete exam schedule {schedule.id}: '
            f'{session_count} session(s) reference it.'
        )

    try:
        schedule.delete()
    except ProtectedError:
        raise Conflict(f'Cannot delete exam schedule {schedule_id}: sessions reference it.')

    audit_logger.warning(
        'SCHEDULE_DELETE | user=%s | schedule_id=%s', _username(user), schedule_id,
    )


def list_schedules(exam_year_id, grade=None, exam_date=None, published_only=False):
    """
    Schedules for an exam year, ordered by day then start time.

    Returns an unevaluated QuerySet, so callers can iterate it lazily and
    re-iterate by calling .all().
    """
    qs = ExamSchedule.objects.filter(exam_year_id=exam_year_id).select_related('subject')
    if grade is not None:
        qs = qs.filter(grade=grade)
    if exam_date is not None:
        qs = qs.filter(exam_date=exam_date)
    if published_only:
        qs = qs.filter(is_published=True)
    return qs.order_by('exam_date', 'scheduled_start_time', 'created_at', 'id')
