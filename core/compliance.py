"""
Timing compliance – pure classification of actual vs scheduled instants.

Scheduled instants are built from a calendar date plus a time of day and
interpreted in the portal time zone (settings.TIME_ZONE). Delays are whole
minutes rounded up, so any positive delay is at least one minute late.
Nothing here touches the database.
"""
import math
from collections import namedtuple
from datetime import date, datetime, timedelta

from django.utils import timezone

# Stored session statuses
STARTED_ON_TIME = 'started_on_time'
STARTED_LATE = 'started_late'
COMPLETED = 'completed'
CANCELLED = 'cancelled'

# Derived (display) statuses
NOT_STARTED = 'not_started'
IN_PROGRESS = 'in_progress'
ENDED_ON_TIME = 'ended_on_time'
ENDED_LATE = 'ended_late'

# Monitoring summary buckets
BUCKET_ON_TIME = 'onTime'
BUCKET_LATE_START = 'lateStart'
BUCKET_IN_PROGRESS = 'inProgress'
BUCKET_NOT_STARTED = 'notStarted'
BUCKET_CANCELLED = 'cancelled'

MINUTES_PER_DAY = 24 * 60

# Forward-only lifecycle; None is the virtual "no row yet" state.
TRANSITIONS = {
    None: {STARTED_ON_TIME, STARTED_LATE, CANCELLED},
    STARTED_ON_TIME: {COMPLETED, CANCELLED},
    STARTED_LATE: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}

Classification = namedtuple('Classification', ['late', 'minutes'])


def compute_end_time(start_time, duration_minutes):
    """
    Return the time of day a sitting ends.

    Raises ValueError when the sitting would run past midnight.
    """
    start = datetime.combine(date.min, start_time)
    end = start + timedelta(minutes=duration_minutes)
    if end.date() != start.date():
        raise ValueError('sitting crosses midnight')
    return end.time()


def crosses_midnight(start_time, duration_minutes):
    try:
        compute_end_time(start_time, duration_minutes)
    except (ValueError, OverflowError):
        return True
    return False


def scheduled_instant(exam_date, time_of_day, tz=None):
    """Combine a date and a time of day into an aware datetime."""
    tz = tz or timezone.get_default_timezone()
    return timezone.make_aware(datetime.combine(exam_date, time_of_day), tz)


def scheduled_end_instant(exam_date, start_time, duration_minutes, tz=None):
    return scheduled_instant(exam_date, start_time, tz) + timedelta(minutes=duration_minutes)


def ensure_aware(value, tz=None):
    """Interpret naive datetimes in the portal time zone."""
    if timezone.is_naive(value):
        return timezone.make_aware(value, tz or timezone.get_default_timezone())
    return value


def delay_minutes(actual, scheduled):
    """Minutes `actual` is past `scheduled`, rounded up; 0 when on time or early."""
    seconds = (ensure_aware(actual) - ensure_aware(scheduled)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)


def classify(actual, scheduled):
    minutes = delay_minutes(actual, scheduled)
    return Classification(late=minutes > 0, minutes=minutes)


def classify_start(actual_start, exam_date, start_time, tz=None):
    return classify(actual_start, scheduled_instant(exam_date, start_time, tz))


def classify_end(actual_end, exam_date, start_time, duration_minutes, tz=None):
    return classify(actual_end, scheduled_end_instant(exam_date, start_time, duration_minutes, tz))


def start_status(started_late):
    return STARTED_LATE if started_late else STARTED_ON_TIME


def end_status(ended_late):
    return ENDED_LATE if ended_late else ENDED_ON_TIME


def can_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def session_phase(has_start, has_end, cancelled=False):
    """Lifecycle phase derived from which timestamps are present."""
    if cancelled:
        return CANCELLED
    if not has_start:
        return NOT_STARTED
    if not has_end:
        return IN_PROGRESS
    return COMPLETED


def display_status(has_start, has_end, started_late, ended_late, cancelled=False):
    """
    Status shown on the monitoring table.

    A running session shows how it started; a finished one shows how it
    ended.
    """
    phase = session_phase(has_start, has_end, cancelled)
    if phase == IN_PROGRESS:
        return start_status(started_late)
    if phase == COMPLETED:
        return end_status(ended_late)
    return phase


def monitoring_bucket(has_start, has_end, started_late, cancelled=False):
    """
    Start-side summary bucket for one monitored sitting.

    Late starts are reported as soon as they happen, before the end is in.
    """
    phase = session_phase(has_start, has_end, cancelled)
    if phase == CANCELLED:
        return BUCKET_CANCELLED
    if phase == NOT_STARTED:
        return BUCKET_NOT_STARTED
    if started_late:
        return BUCKET_LATE_START
    if phase == IN_PROGRESS:
        return BUCKET_IN_PROGRESS
    return BUCKET_ON_TIME
