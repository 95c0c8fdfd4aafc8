"""
Session recorder – ground-truth start, end and cancellation events from
exam centers.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from core import compliance
from core.catalog import ModelCatalog
from core.exceptions import Conflict, NotFound, ValidationError
from core.models import ExamSchedule, ExamSession, LateStartReason, SessionStatus

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('portal.audit')


def _username(user):
    return getattr(user, 'username', None) or 'system'


def _published_schedule_for_update(schedule_id):
    schedule = ExamSchedule.objects.select_for_update().filter(
        pk=schedule_id, is_published=True,
    ).first()
    if schedule is None:
        raise NotFound(f'No published exam schedule {schedule_id}.')
    return schedule


def _require_center(catalog, center_id):
    center = catalog.lookup_center(center_id)
    if center is None:
        raise NotFound(f'Exam center {center_id} does not exist.')
    return center


def _existing_session(schedule_id, center_id):
    return ExamSession.objects.select_for_update().filter(
        schedule_id=schedule_id, center_id=center_id,
    ).first()


def _duplicate_message(schedule_id, center_id):
    return f'A session is already recorded for schedule {schedule_id} at center {center_id}.'


def get_session(session_id):
    try:
        return ExamSession.objects.select_related('schedule', 'center').get(pk=session_id)
    except ExamSession.DoesNotExist:
        raise NotFound(f'Exam session {session_id} not found.')


def record_start(schedule_id, center_id, actual_start_time, candidate_count=None,
                 late_start_reason_code=None, late_start_reason_details='', notes='',
                 user=None, catalog=None):
    """
    Record that a published sitting started at a center.

    A late start without a reason code is accepted; the reason is captured
    when the center supplies one.
    """
    catalog = catalog or ModelCatalog()
    if actual_start_time is None:
        raise ValidationError('actual_start_time is required.')
    actual_start_time = compliance.ensure_aware(actual_start_time)
    if candidate_count is not None and candidate_count < 0:
        raise ValidationError('candidate_count cannot be negative.')
    if late_start_reason_code and late_start_reason_code not in LateStartReason.values:
        raise ValidationError(f'Unknown late start reason "{late_start_reason_code}".')

    with transaction.atomic():
        schedule = _published_schedule_for_update(schedule_id)
        _require_center(catalog, center_id)
        if _existing_session(schedule.pk, center_id) is not None:
            raise Conflict(_duplicate_message(schedule.pk, center_id))

        session = ExamSession(
            schedule=schedule,
            center_id=center_id,
            actual_start_time=actual_start_time,
            candidate_count=candidate_count,
            late_start_reason_code=late_start_reason_code or None,
            late_start_reason_details=late_start_reason_details or '',
            notes=notes or '',
            recorded_by=getattr(user, 'pk', None),
        )
        try:
            with transaction.atomic():
                session.save(force_insert=True)
        except IntegrityError:
            # A concurrent writer inserted the same (schedule, center) pair
            raise Conflict(_duplicate_message(schedule.pk, center_id))

    if session.started_late and not session.late_start_reason_code:
        logger.info(
            'Session %s started %s min late without a reason code',
            session.id, session.late_start_minutes,
        )
    audit_logger.info(
        'SESSION_START | user=%s | session_id=%s | schedule_id=%s | center_id=%s | '
        'status=%s | late_minutes=%s',
        _username(user), session.id, schedule.pk, center_id,
        session.status, session.late_start_minutes,
    )
    return session


def record_end(session_id, actual_end_time, notes=None, user=None):
    """Record the end of a started sitting; an end can be recorded once."""
    if actual_end_time is None:
        raise ValidationError('actual_end_time is required.')
    actual_end_time = compliance.ensure_aware(actual_end_time)

    with transaction.atomic():
        try:
            session = ExamSession.objects.select_for_update().get(pk=session_id)
        except ExamSession.DoesNotExist:
            raise NotFound(f'Exam session {session_id} not found.')

        if session.is_cancelled:
            raise Conflict(f'Exam session {session.id} was cancelled.')
        if session.actual_start_time is None:
            raise Conflict(f'Exam session {session.id} has no recorded start.')
        if session.actual_end_time is not None:
            raise Conflict(f'Exam session {session.id} already has an end recorded.')
        if actual_end_time < session.actual_start_time:
            raise ValidationError(
                f'End time {actual_end_time.isoformat()} is before the recorded start '
                f'{session.actual_start_time.isoformat()}.'
            )
        if not compliance.can_transition(session.status, SessionStatus.COMPLETED):
            raise Conflict(f'Exam session {session.id} cannot be ended from "{session.status}".')

        session.actual_end_time = actual_end_time
        if notes:
            session.notes = notes
        session.save()

    audit_logger.info(
        'SESSION_END | user=%s | session_id=%s | end_status=%s | late_minutes=%s',
        _username(user), session.id, session.end_status, session.late_end_minutes,
    )
    return session


def cancel_session(schedule_id, center_id, reason='', user=None, catalog=None):
    """
    Cancel the sitting of a published schedule at one center.

    Works before the start (a cancelled row is created) or while running;
    a sitting whose end is already recorded cannot be cancelled.
    """
    catalog = catalog or ModelCatalog()

    with transaction.atomic():
        schedule = _published_schedule_for_update(schedule_id)
        _require_center(catalog, center_id)
        session = _existing_session(schedule.pk, center_id)
        previous_status = session.status if session else None

        if session is None:
            session = ExamSession(
                schedule=schedule,
                center_id=center_id,
                recorded_by=getattr(user, 'pk', None),
            )
        elif session.is_cancelled:
            raise Conflict(f'Exam session {session.id} is already cancelled.')
        elif session.actual_end_time is not None:
            raise Conflict(
                f'Exam session {session.id} has already ended and cannot be cancelled.'
            )

        if not compliance.can_transition(previous_status, SessionStatus.CANCELLED):
            raise Conflict(f'Cannot cancel a session in status "{previous_status}".')

        session.status = SessionStatus.CANCELLED
        session.cancelled_at = timezone.now()
        session.cancellation_reason = reason or ''
        try:
            with transaction.atomic():
                session.save()
        except IntegrityError:
            raise Conflict(_duplicate_message(schedule.pk, center_id))

    audit_logger.warning(
        'SESSION_CANCEL | user=%s | session_id=%s | schedule_id=%s | center_id=%s | '
        'previous_status=%s',
        _username(user), session.id, schedule.pk, center_id, previous_status or 'not_started',
    )
    return session
