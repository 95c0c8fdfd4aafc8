"""
Monitoring aggregator – compliance summary and detail rows for an exam
year, optionally narrowed to one exam date.

build_monitoring_report() is a pure function of the schedules, sessions and
catalog it is given; monitoring_snapshot() loads those from the database.
"""
from core import compliance
from core.catalog import CachedCatalog, ModelCatalog
from core.exceptions import NotFound
from core.models import ExamSession, LateStartReason
from core.services.schedules import list_schedules

SUMMARY_KEYS = (
    'total', 'onTime', 'lateStart', 'lateEnd', 'inProgress', 'notStarted', 'cancelled',
)


def _empty_summary():
    return {key: 0 for key in SUMMARY_KEYS}


def _iso(value):
    return value.isoformat() if value is not None else None


def _schedule_part(schedule, subject):
    return {
        'schedule_id': str(schedule.id),
        'subject': {
            'id': schedule.subject_id,
            'name': subject.name if subject else None,
        },
        'grade': schedule.grade,
        'exam_date': schedule.exam_date.isoformat(),
        'scheduled_start_time': schedule.scheduled_start_time.strftime('%H:%M'),
        'scheduled_end_time': schedule.scheduled_end_time.strftime('%H:%M'),
        'duration_minutes': schedule.duration_minutes,
    }


def _not_started_row(schedule, subject):
    row = _schedule_part(schedule, subject)
    row.update({
        'id': None,
        'center': None,
        'actual_start_time': None,
        'actual_end_time': None,
        'candidate_count': None,
        'status': compliance.NOT_STARTED,
        'phase': compliance.NOT_STARTED,
        'started_late': False,
        'ended_late': False,
        'late_start_minutes': 0,
        'late_end_minutes': 0,
        'late_start_reason_code': None,
        'late_start_reason_label': None,
        'late_start_reason_details': '',
    })
    return row


def _session_row(schedule, subject, session, center):
    has_start = session.actual_start_time is not None
    has_end = session.actual_end_time is not None
    cancelled = session.status == compliance.CANCELLED
    reason = session.late_start_reason_code

    row = _schedule_part(schedule, subject)
    row.update({
        'id': str(session.id),
        'center': {
            'id': session.center_id,
            'name': center.name if center else f'Center {session.center_id}',
        },
        'actual_start_time': _iso(session.actual_start_time),
        'actual_end_time': _iso(session.actual_end_time),
        'candidate_count': session.candidate_count,
        'status': compliance.display_status(
            has_start, has_end, session.started_late, session.ended_late, cancelled,
        ),
        'phase': compliance.session_phase(has_start, has_end, cancelled),
        'started_late': session.started_late,
        'ended_late': session.ended_late,
        'late_start_minutes': session.late_start_minutes,
        'late_end_minutes': session.late_end_minutes,
        'late_start_reason_code': reason,
        'late_start_reason_label': LateStartReason(reason).label if reason in LateStartReason.values else reason,
        'late_start_reason_details': session.late_start_reason_details,
    })
    return row


def _row_sort_key(row):
    center = row['center']
    return (
        row['exam_date'],
        row['scheduled_start_time'],
        row['subject']['name'] or '',
        row['schedule_id'],
        center is None,
        center['name'] if center else '',
        center['id'] if center else 0,
    )


def build_monitoring_report(schedules, sessions, catalog):
    """
    Summarize compliance for the given schedules and their sessions.

    Each session is one monitored unit; a schedule with no session at all
    contributes a single synthesized "not started" unit. Every unit lands in
    exactly one start-side bucket and may also count towards lateEnd.
    """
    catalog = CachedCatalog(catalog)
    by_schedule = {}
    for session in sessions:
        by_schedule.setdefault(session.schedule_id, []).append(session)

    summary = _empty_summary()
    rows = []
    for schedule in schedules:
        subject = catalog.lookup_subject(schedule.subject_id)
        attached = by_schedule.get(schedule.id, [])
        if not attached:
            summary['total'] += 1
            summary[compliance.BUCKET_NOT_STARTED] += 1
            rows.append(_not_started_row(schedule, subject))
            continue

        for session in attached:
            cancelled = session.status == compliance.CANCELLED
            bucket = compliance.monitoring_bucket(
                session.actual_start_time is not None,
                session.actual_end_time is not None,
                session.started_late,
                cancelled,
            )
            summary['total'] += 1
            summary[bucket] += 1
            if session.ended_late and not cancelled:
                summary['lateEnd'] += 1
            center = catalog.lookup_center(session.center_id)
            rows.append(_session_row(schedule, subject, session, center))

    rows.sort(key=_row_sort_key)
    return {'summary': summary, 'sessions': rows}


def monitoring_snapshot(exam_year_id, exam_date=None, catalog=None):
    """Load the published schedules in scope and aggregate them."""
    catalog = catalog or ModelCatalog()
    exam_year = catalog.lookup_exam_year(exam_year_id)
    if exam_year is None:
        raise NotFound(f'Exam year {exam_year_id} does not exist.')

    schedules = list(list_schedules(exam_year_id, exam_date=exam_date, published_only=True))
    sessions = list(
        ExamSession.objects.filter(
            schedule_id__in=[s.id for s in schedules],
        ).order_by('created_at', 'id')
    )
    report = build_monitoring_report(schedules, sessions, catalog)
    report['scope'] = {
        'exam_year_id': exam_year.id,
        'exam_year': exam_year.name,
        'exam_date': exam_date.isoformat() if exam_date else None,
    }
    return report
