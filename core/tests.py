"""
Core tests – compliance classification, schedule registry, session recorder
and monitoring aggregation.
"""
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from io import StringIO
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.management import CommandError, call_command
from django.db.models import QuerySet
from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from core import compliance
from core.catalog import CenterRef, ReferenceCatalog, SubjectRef
from core.exceptions import Conflict, NotFound, ValidationError
from core.models import (
    AuditLog, ExamCenter, ExamSchedule, ExamSession, ExamYear, SessionStatus, Subject,
    UserProfile,
)
from core.services import monitoring, schedules, sessions

UTC = dt_timezone.utc
EXAM_DAY = date(2025, 6, 2)


def at(hour, minute=0, second=0, day=EXAM_DAY):
    return datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=UTC)


class FakeCatalog(ReferenceCatalog):
    """In-memory catalog for exercising the core without reference tables."""

    def __init__(self, subjects=(), centers=()):
        self.subjects = {s.id: s for s in subjects}
        self.centers = {c.id: c for c in centers}
        self.calls = 0

    def lookup_exam_year(self, exam_year_id):
        return None

    def lookup_subject(self, subject_id):
        self.calls += 1
        return self.subjects.get(subject_id)

    def lookup_center(self, center_id):
        self.calls += 1
        return self.centers.get(center_id)


class SchedulingTestBase(TestCase):
    """Shared reference data and a published 09:00 / 120 min sitting."""

    @classmethod
    def setUpTestData(cls):
        cls.year = ExamYear.objects.create(year=2025, name='2025/2026')
        cls.maths = Subject.objects.create(code='MATH6', name='Mathematics', grade=6)
        cls.science = Subject.objects.create(code='SCI6', name='Science', grade=6)
        cls.english8 = Subject.objects.create(code='ENG8', name='English', grade=8)
        cls.center_a = ExamCenter.objects.create(code='C-A', name='Alpha Center', region='North')
        cls.center_b = ExamCenter.objects.create(code='C-B', name='Beta Center', region='South')

    def setUp(self):
        self.schedule = self.make_schedule(published=True)

    def make_schedule(self, subject=None, start=time(9, 0), duration=120,
                      exam_date=EXAM_DAY, published=False):
        subject = subject or self.maths
        schedule = schedules.create_schedule(
            self.year.id, subject.id, subject.grade, exam_date, start, duration,
        )
        if published:
            schedule = schedules.publish_schedule(schedule.id)
        return schedule


# ── Compliance classifier (pure) ──────────────────────────────────────────

class ComplianceClassifierTest(SimpleTestCase):
    """Delay arithmetic and derived statuses without a database."""

    def test_end_time_is_start_plus_duration(self):
        self.assertEqual(compliance.compute_end_time(time(9, 0), 120), time(11, 0))
        self.assertEqual(compliance.compute_end_time(time(13, 45), 90), time(15, 15))

    def test_sitting_crossing_midnight_is_detected(self):
        self.assertTrue(compliance.crosses_midnight(time(23, 0), 120))
        self.assertTrue(compliance.crosses_midnight(time(23, 0), 60))
        self.assertFalse(compliance.crosses_midnight(time(22, 0), 119))

    def test_on_time_and_early_are_zero(self):
        self.assertEqual(compliance.delay_minutes(at(9, 0), at(9, 0)), 0)
        self.assertEqual(compliance.delay_minutes(at(8, 45), at(9, 0)), 0)

    def test_any_positive_delay_rounds_up(self):
        self.assertEqual(compliance.delay_minutes(at(9, 0, 1), at(9, 0)), 1)
        self.assertEqual(compliance.delay_minutes(at(9, 17), at(9, 0)), 17)
        self.assertEqual(compliance.delay_minutes(at(9, 17, 30), at(9, 0)), 18)

    def test_classify_start_uses_exam_date_and_start_time(self):
        result = compliance.classify_start(at(9, 17), EXAM_DAY, time(9, 0), tz=UTC)
        self.assertTrue(result.late)
        self.assertEqual(result.minutes, 17)

    def test_classify_end_uses_duration(self):
        on_time = compliance.classify_end(at(11, 0), EXAM_DAY, time(9, 0), 120, tz=UTC)
        late = compliance.classify_end(at(11, 5), EXAM_DAY, time(9, 0), 120, tz=UTC)
        self.assertEqual(on_time, compliance.Classification(late=False, minutes=0))
        self.assertEqual(late, compliance.Classification(late=True, minutes=5))

    def test_session_phase(self):
        self.assertEqual(compliance.session_phase(False, False), compliance.NOT_STARTED)
        self.assertEqual(compliance.session_phase(True, False), compliance.IN_PROGRESS)
        self.assertEqual(compliance.session_phase(True, True), compliance.COMPLETED)
        self.assertEqual(compliance.session_phase(True, False, cancelled=True), compliance.CANCELLED)

    def test_display_status(self):
        self.assertEqual(compliance.display_status(True, False, True, False), 'started_late')
        self.assertEqual(compliance.display_status(True, True, True, False), 'ended_on_time')
        self.assertEqual(compliance.display_status(True, True, False, True), 'ended_late')
        self.assertEqual(compliance.display_status(False, False, False, False), 'not_started')

    def test_monitoring_bucket(self):
        self.assertEqual(compliance.monitoring_bucket(False, False, False), 'notStarted')
        self.assertEqual(compliance.monitoring_bucket(True, False, False), 'inProgress')
        self.assertEqual(compliance.monitoring_bucket(True, False, True), 'lateStart')
        self.assertEqual(compliance.monitoring_bucket(True, True, True), 'lateStart')
        self.assertEqual(compliance.monitoring_bucket(True, True, False), 'onTime')
        self.assertEqual(compliance.monitoring_bucket(True, False, False, True), 'cancelled')

    def test_transitions_are_forward_only(self):
        self.assertTrue(compliance.can_transition(None, 'started_late'))
        self.assertTrue(compliance.can_transition('started_on_time', 'completed'))
        self.assertTrue(compliance.can_transition('started_late', 'cancelled'))
        self.assertFalse(compliance.can_transition('completed', 'cancelled'))
        self.assertFalse(compliance.can_transition('completed', 'started_on_time'))
        self.assertFalse(compliance.can_transition('cancelled', 'started_on_time'))


# ── Schedule registry ─────────────────────────────────────────────────────

class ScheduleRegistryTest(SchedulingTestBase):

    def test_create_is_draft_with_derived_end(self):
        schedule = self.make_schedule(subject=self.science, start=time(13, 30), duration=90)
        self.assertFalse(schedule.is_published)
        self.assertEqual(schedule.scheduled_end_time, time(15, 0))

    def test_duration_bounds(self):
        with self.assertRaises(ValidationError):
            self.make_schedule(duration=5)
        with self.assertRaises(ValidationError):
            self.make_schedule(start=time(0, 0), duration=24 * 60 + 1)

    def test_overnight_sitting_rejected(self):
        with self.assertRaises(ValidationError):
            self.make_schedule(start=time(23, 0), duration=120)

    def test_grade_must_match_subject(self):
        with self.assertRaises(ValidationError):
            schedules.create_schedule(
                self.year.id, self.english8.id, 6, EXAM_DAY, time(9, 0), 60,
            )

    def test_unknown_references(self):
        with self.assertRaises(NotFound):
            schedules.create_schedule(9999, self.maths.id, 6, EXAM_DAY, time(9, 0), 60)
        with self.assertRaises(NotFound):
            schedules.create_schedule(self.year.id, 9999, 6, EXAM_DAY, time(9, 0), 60)

    def test_publish_twice_conflicts(self):
        with self.assertRaises(Conflict):
            schedules.publish_schedule(self.schedule.id)

    def test_update_draft_recomputes_end(self):
        draft = self.make_schedule(subject=self.science)
        updated = schedules.update_schedule(
            draft.id, {'scheduled_start_time': time(10, 15), 'duration_minutes': 45},
        )
        self.assertEqual(updated.scheduled_end_time, time(11, 0))
        updated.refresh_from_db()
        self.assertEqual(updated.scheduled_end_time, time(11, 0))

    def test_published_schedule_cannot_be_updated(self):
        with self.assertRaises(Conflict):
            schedules.update_schedule(self.schedule.id, {'duration_minutes': 60})
        self.schedule.refresh_from_db()
        self.assertEqual(self.schedule.duration_minutes, 120)

    def test_update_rejects_unknown_fields(self):
        draft = self.make_schedule(subject=self.science)
        with self.assertRaises(ValidationError):
            schedules.update_schedule(draft.id, {'is_published': True})

    def test_update_rejects_blank_required_fields(self):
        draft = self.make_schedule(subject=self.science)
        for field in schedules.REQUIRED_FIELDS:
            with self.assertRaises(ValidationError):
                schedules.update_schedule(draft.id, {field: None})
        draft.refresh_from_db()
        self.assertEqual(draft.scheduled_start_time, time(9, 0))

    def test_missing_start_time_is_invalid(self):
        with self.assertRaises(ValidationError):
            schedules.validate_timing(None, 60)

    def test_unpublish_then_correct(self):
        schedules.unpublish_schedule(self.schedule.id)
        updated = schedules.update_schedule(self.schedule.id, {'duration_minutes': 150})
        self.assertEqual(updated.scheduled_end_time, time(11, 30))

    def test_unpublish_blocked_by_sessions(self):
        sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        with self.assertRaises(Conflict):
            schedules.unpublish_schedule(self.schedule.id)

    def test_delete_published_conflicts(self):
        # Scenario E (published half)
        with self.assertRaises(Conflict):
            schedules.delete_schedule(self.schedule.id)
        self.assertTrue(ExamSchedule.objects.filter(pk=self.schedule.id).exists())

    def test_delete_draft_without_sessions(self):
        # Scenario E (draft half)
        draft = self.make_schedule(subject=self.science)
        schedules.delete_schedule(draft.id)
        self.assertFalse(ExamSchedule.objects.filter(pk=draft.id).exists())

    def test_delete_missing_schedule(self):
        with self.assertRaises(NotFound):
            schedules.delete_schedule('00000000-0000-0000-0000-000000000000')

    def test_list_is_lazy_and_ordered(self):
        late_day = self.make_schedule(subject=self.science, exam_date=EXAM_DAY + timedelta(days=1),
                                      start=time(8, 0))
        early = self.make_schedule(subject=self.science, start=time(7, 30), duration=60)
        schedules.create_schedule(self.year.id, self.english8.id, 8, EXAM_DAY, time(8, 0), 60)

        qs = schedules.list_schedules(self.year.id, grade=6)
        self.assertIsInstance(qs, QuerySet)
        ids = [s.id for s in qs]
        self.assertEqual(ids, [early.id, self.schedule.id, late_day.id])
        # Restartable
        self.assertEqual([s.id for s in qs.all()], ids)

    def test_list_published_only(self):
        self.make_schedule(subject=self.science)
        ids = [s.id for s in schedules.list_schedules(self.year.id, published_only=True)]
        self.assertEqual(ids, [self.schedule.id])


# ── Session recorder ──────────────────────────────────────────────────────

class SessionRecorderTest(SchedulingTestBase):

    def test_scenario_a_on_time_start(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        self.assertEqual(session.status, SessionStatus.STARTED_ON_TIME)
        self.assertFalse(session.started_late)
        self.assertEqual(session.late_start_minutes, 0)
        self.assertIsNone(session.actual_end_time)

    def test_scenario_b_late_start(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 17))
        self.assertEqual(session.status, SessionStatus.STARTED_LATE)
        self.assertTrue(session.started_late)
        self.assertEqual(session.late_start_minutes, 17)

    def test_scenario_c_end_on_schedule(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 17))
        session = sessions.record_end(session.id, at(11, 0))
        self.assertEqual(session.end_status, 'ended_on_time')
        self.assertFalse(session.ended_late)
        self.assertEqual(session.late_end_minutes, 0)
        self.assertEqual(session.status, SessionStatus.COMPLETED)
        # Start classification is preserved
        self.assertEqual(session.start_status, 'started_late')
        self.assertEqual(session.late_start_minutes, 17)

    def test_late_end(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        session = sessions.record_end(session.id, at(11, 12))
        self.assertTrue(session.ended_late)
        self.assertEqual(session.late_end_minutes, 12)
        self.assertEqual(session.end_status, 'ended_late')

    def test_sub_minute_delay_is_late(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0, 20))
        self.assertEqual(session.status, SessionStatus.STARTED_LATE)
        self.assertEqual(session.late_start_minutes, 1)

    def test_late_start_without_reason_is_accepted(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 40))
        self.assertTrue(session.started_late)
        self.assertIsNone(session.late_start_reason_code)

    def test_reason_and_headcount_are_stored(self):
        session = sessions.record_start(
            self.schedule.id, self.center_a.id, at(9, 25),
            candidate_count=48, late_start_reason_code='transport_delay',
            late_start_reason_details='Bus broke down',
        )
        session.refresh_from_db()
        self.assertEqual(session.candidate_count, 48)
        self.assertEqual(session.late_start_reason_code, 'transport_delay')
        self.assertEqual(session.late_start_reason_details, 'Bus broke down')

    def test_invalid_inputs(self):
        with self.assertRaises(ValidationError):
            sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0), candidate_count=-1)
        with self.assertRaises(ValidationError):
            sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0),
                                  late_start_reason_code='aliens')
        self.assertEqual(ExamSession.objects.count(), 0)

    def test_naive_start_is_read_in_portal_time_zone(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, datetime(2025, 6, 2, 9, 5))
        self.assertEqual(session.late_start_minutes, 5)

    def test_unpublished_schedule_not_found(self):
        draft = self.make_schedule(subject=self.science)
        with self.assertRaises(NotFound):
            sessions.record_start(draft.id, self.center_a.id, at(9, 0))

    def test_unknown_center_not_found(self):
        with self.assertRaises(NotFound):
            sessions.record_start(self.schedule.id, 9999, at(9, 0))

    def test_duplicate_start_conflicts(self):
        sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        with self.assertRaises(Conflict) as ctx:
            sessions.record_start(self.schedule.id, self.center_a.id, at(9, 5))
        self.assertIn(str(self.center_a.id), ctx.exception.message)
        self.assertEqual(ExamSession.objects.count(), 1)

    def test_scenario_f_concurrent_start_loses_with_conflict(self):
        sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        # The second writer did not see the first row before inserting
        with mock.patch.object(sessions, '_existing_session', return_value=None):
            with self.assertRaises(Conflict):
                sessions.record_start(self.schedule.id, self.center_a.id, at(9, 1))
        self.assertEqual(
            ExamSession.objects.filter(schedule=self.schedule, center=self.center_a).count(), 1,
        )

    def test_same_schedule_other_center_is_independent(self):
        sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        other = sessions.record_start(self.schedule.id, self.center_b.id, at(9, 3))
        self.assertEqual(other.late_start_minutes, 3)

    def test_end_before_start_rejected(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 10))
        for end in (at(9, 9, 59), at(8, 0), at(9, 0)):
            with self.assertRaises(ValidationError):
                sessions.record_end(session.id, end)
        session.refresh_from_db()
        self.assertIsNone(session.actual_end_time)

    def test_end_equal_to_start_allowed(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 10))
        session = sessions.record_end(session.id, at(9, 10))
        self.assertEqual(session.status, SessionStatus.COMPLETED)

    def test_end_twice_conflicts(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        sessions.record_end(session.id, at(11, 0))
        with self.assertRaises(Conflict):
            sessions.record_end(session.id, at(11, 30))
        session.refresh_from_db()
        self.assertEqual(session.actual_end_time, at(11, 0))

    def test_end_unknown_session(self):
        with self.assertRaises(NotFound):
            sessions.record_end('00000000-0000-0000-0000-000000000000', at(11, 0))

    def test_lateness_is_rederived_on_save(self):
        session = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 17))
        session.late_start_minutes = 0
        session.started_late = False
        session.save()
        session.refresh_from_db()
        self.assertTrue(session.started_late)
        self.assertEqual(session.late_start_minutes, 17)

    def test_start_minutes_match_start_status(self):
        for minute, center in ((0, self.center_a), (4, self.center_b)):
            session = sessions.record_start(self.schedule.id, center.id, at(9, minute))
            self.assertEqual(session.late_start_minutes > 0, session.status == SessionStatus.STARTED_LATE)
            self.assertEqual(session.late_start_minutes == 0, session.status == SessionStatus.STARTED_ON_TIME)


class SessionCancellationTest(SchedulingTestBase):

    def test_cancel_before_start_blocks_recording(self):
        session = sessions.cancel_session(self.schedule.id, self.center_a.id, reason='Flooding')
        self.assertEqual(session.status, SessionStatus.CANCELLED)
        self.assertIsNone(session.actual_start_time)
        self.assertEqual(session.phase, compliance.CANCELLED)
        with self.assertRaises(Conflict):
            sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))

    def test_cancel_running_session_blocks_end(self):
        started = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        cancelled = sessions.cancel_session(self.schedule.id, self.center_a.id)
        self.assertEqual(cancelled.id, started.id)
        self.assertEqual(cancelled.status, SessionStatus.CANCELLED)
        with self.assertRaises(Conflict):
            sessions.record_end(started.id, at(11, 0))

    def test_cancel_completed_session_conflicts(self):
        started = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        sessions.record_end(started.id, at(11, 0))
        with self.assertRaises(Conflict):
            sessions.cancel_session(self.schedule.id, self.center_a.id)

    def test_cancel_twice_conflicts(self):
        sessions.cancel_session(self.schedule.id, self.center_a.id)
        with self.assertRaises(Conflict):
            sessions.cancel_session(self.schedule.id, self.center_a.id)

    def test_cancelled_session_blocks_unpublish(self):
        sessions.cancel_session(self.schedule.id, self.center_a.id)
        with self.assertRaises(Conflict):
            schedules.unpublish_schedule(self.schedule.id)


# ── Monitoring aggregator ─────────────────────────────────────────────────

class MonitoringSnapshotTest(SchedulingTestBase):

    def test_scenario_d_schedule_without_session(self):
        report = monitoring.monitoring_snapshot(self.year.id)
        self.assertEqual(report['summary'], {
            'total': 1, 'onTime': 0, 'lateStart': 0, 'lateEnd': 0,
            'inProgress': 0, 'notStarted': 1, 'cancelled': 0,
        })
        row = report['sessions'][0]
        self.assertIsNone(row['id'])
        self.assertIsNone(row['center'])
        self.assertEqual(row['status'], 'not_started')
        self.assertEqual(row['subject']['name'], 'Mathematics')
        self.assertEqual(row['scheduled_start_time'], '09:00')

    def test_drafts_are_not_monitored(self):
        self.make_schedule(subject=self.science)
        report = monitoring.monitoring_snapshot(self.year.id)
        self.assertEqual(report['summary']['total'], 1)

    def test_counts_one_unit_per_session(self):
        center_c = ExamCenter.objects.create(code='C-C', name='Gamma Center', region='East')
        for center in (self.center_a, self.center_b, center_c):
            sessions.record_start(self.schedule.id, center.id, at(9, 0))
        self.make_schedule(subject=self.science, start=time(13, 0), published=True)

        summary = monitoring.monitoring_snapshot(self.year.id)['summary']
        # Three sessions of one schedule plus one schedule nobody started
        self.assertEqual(summary['total'], 4)
        self.assertEqual(summary['inProgress'], 3)
        self.assertEqual(summary['notStarted'], 1)

    def test_mixed_population(self):
        s_a = sessions.record_start(self.schedule.id, self.center_a.id, at(9, 0))
        sessions.record_end(s_a.id, at(11, 20))
        sessions.record_start(self.schedule.id, self.center_b.id, at(9, 30),
                              late_start_reason_code='weather')

        report = monitoring.monitoring_snapshot(self.year.id)
        summary = report['summary']
        self.assertEqual(summary['total'], 2)
        self.assertEqual(summary['onTime'], 1)
        self.assertEqual(summary['lateStart'], 1)
        self.assertEqual(summary['lateEnd'], 1)
        self.assertEqual(summary['notStarted'], 0)

        alpha, beta = report['sessions']
        self.assertEqual(alpha['center']['name'], 'Alpha Center')
        self.assertEqual(alpha['status'], 'ended_late')
        self.assertEqual(alpha['late_end_minutes'], 20)
        self.assertEqual(beta['status'], 'started_late')
        self.assertEqual(beta['late_start_reason_label'], 'Weather Conditions')

    def test_date_scope(self):
        other_day = self.make_schedule(subject=self.science, exam_date=EXAM_DAY + timedelta(days=1),
                                       published=True)
        report = monitoring.monitoring_snapshot(self.year.id, exam_date=other_day.exam_date)
        self.assertEqual(report['summary']['total'], 1)
        self.assertEqual(report['sessions'][0]['schedule_id'], str(other_day.id))
        self.assertEqual(report['scope']['exam_date'], '2025-06-03')

    def test_repeat_calls_are_identical(self):
        sessions.record_start(self.schedule.id, self.center_a.id, at(9, 2))
        first = monitoring.monitoring_snapshot(self.year.id)
        second = monitoring.monitoring_snapshot(self.year.id)
        self.assertEqual(first, second)
        self.assertEqual(ExamSession.objects.count(), 1)

    def test_unknown_exam_year(self):
        with self.assertRaises(NotFound):
            monitoring.monitoring_snapshot(9999)


class MonitoringReportPureTest(SimpleTestCase):
    """build_monitoring_report over plain objects and a fake catalog."""

    def setUp(self):
        self.catalog = FakeCatalog(
            subjects=[SubjectRef(1, 'Mathematics', 6), SubjectRef(2, 'Science', 6)],
            centers=[CenterRef(10, 'Alpha'), CenterRef(11, 'Beta'), CenterRef(12, 'Gamma')],
        )
        self.s1 = self._schedule('s1', 1, time(9, 0))
        self.s2 = self._schedule('s2', 2, time(13, 0))
        self.s3 = self._schedule('s3', 2, time(8, 0))
        self.sessions = [
            self._session('a', 's1', 10, at(9, 0), at(11, 5), started_late=False, ended_late=True,
                          late_end=5, status='completed'),
            self._session('b', 's1', 11, at(9, 12), None, started_late=True, late_start=12,
                          status='started_late'),
            self._session('c', 's1', 12, at(8, 58), None, status='started_on_time'),
            self._session('d', 's3', 10, None, None, status='cancelled'),
        ]

    def _schedule(self, sid, subject_id, start):
        return SimpleNamespace(
            id=sid, subject_id=subject_id, grade=6, exam_date=EXAM_DAY,
            scheduled_start_time=start, duration_minutes=120,
            scheduled_end_time=compliance.compute_end_time(start, 120),
        )

    def _session(self, sid, schedule_id, center_id, start, end, started_late=False,
                 ended_late=False, late_start=0, late_end=0, status='started_on_time'):
        return SimpleNamespace(
            id=sid, schedule_id=schedule_id, center_id=center_id,
            actual_start_time=start, actual_end_time=end, candidate_count=None,
            status=status, started_late=started_late, ended_late=ended_late,
            late_start_minutes=late_start, late_end_minutes=late_end,
            late_start_reason_code=None, late_start_reason_details='',
        )

    def test_summary_partitions_start_side(self):
        report = monitoring.build_monitoring_report(
            [self.s1, self.s2, self.s3], self.sessions, self.catalog,
        )
        summary = report['summary']
        self.assertEqual(summary, {
            'total': 5, 'onTime': 1, 'lateStart': 1, 'lateEnd': 1,
            'inProgress': 1, 'notStarted': 1, 'cancelled': 1,
        })
        start_side = ('onTime', 'lateStart', 'inProgress', 'notStarted', 'cancelled')
        self.assertEqual(sum(summary[k] for k in start_side), summary['total'])

    def test_rows_are_ordered_and_complete(self):
        report = monitoring.build_monitoring_report(
            [self.s2, self.s1, self.s3], list(reversed(self.sessions)), self.catalog,
        )
        rows = report['sessions']
        self.assertEqual(
            [(r['schedule_id'], r['center']['name'] if r['center'] else None) for r in rows],
            [('s3', 'Alpha'), ('s1', 'Alpha'), ('s1', 'Beta'), ('s1', 'Gamma'), ('s2', None)],
        )
        self.assertEqual(rows[-1]['status'], 'not_started')
        self.assertEqual(rows[0]['status'], 'cancelled')

    def test_input_order_does_not_change_result(self):
        first = monitoring.build_monitoring_report([self.s1, self.s2, self.s3], self.sessions, self.catalog)
        second = monitoring.build_monitoring_report(
            [self.s3, self.s2, self.s1], list(reversed(self.sessions)), self.catalog,
        )
        self.assertEqual(first, second)

    def test_catalog_lookups_are_cached_per_call(self):
        monitoring.build_monitoring_report([self.s1], self.sessions[:3], self.catalog)
        # One subject plus three centers
        self.assertEqual(self.catalog.calls, 4)


# ── Model validation & admin ──────────────────────────────────────────────

class ScheduleModelValidationTest(SchedulingTestBase):
    """clean() applies the same rules as create_schedule()."""

    def build(self, **overrides):
        fields = dict(
            exam_year=self.year, subject=self.maths, grade=6, exam_date=EXAM_DAY,
            scheduled_start_time=time(9, 0), duration_minutes=120,
        )
        fields.update(overrides)
        return ExamSchedule(**fields)

    def test_valid_schedule_passes(self):
        self.build().clean()

    def test_duration_outside_bounds(self):
        with self.assertRaises(DjangoValidationError) as ctx:
            self.build(duration_minutes=1).clean()
        self.assertIn('duration_minutes', ctx.exception.message_dict)

    def test_grade_mismatch(self):
        with self.assertRaises(DjangoValidationError) as ctx:
            self.build(grade=9).clean()
        self.assertIn('grade', ctx.exception.message_dict)

    def test_overnight_sitting(self):
        with self.assertRaises(DjangoValidationError):
            self.build(scheduled_start_time=time(23, 0)).clean()


class ScheduleAdminTest(SchedulingTestBase):

    def setUp(self):
        super().setUp()
        self.admin_user = get_user_model().objects.create_superuser(
            username='root', email='root@portal.local', password='RootPass123!',
        )
        self.client.force_login(self.admin_user)
        self.url = reverse('admin:core_examschedule_add')

    def payload(self, **overrides):
        data = {
            'exam_year': self.year.id,
            'subject': self.science.id,
            'grade': 6,
            'exam_date': '2025-06-03',
            'scheduled_start_time': '09:00:00',
            'duration_minutes': 90,
            'venue': '',
            'notes': '',
        }
        data.update(overrides)
        return data

    def test_admin_add_rejects_invalid_schedule(self):
        before = ExamSchedule.objects.count()
        resp = self.client.post(self.url, self.payload(grade=9, duration_minutes=1))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(ExamSchedule.objects.count(), before)
        errors = resp.context['adminform'].form.errors
        self.assertIn('grade', errors)
        self.assertIn('duration_minutes', errors)

    def test_admin_add_valid_schedule(self):
        resp = self.client.post(self.url, self.payload())
        self.assertEqual(resp.status_code, 302)
        created = ExamSchedule.objects.get(subject=self.science, exam_date=date(2025, 6, 3))
        self.assertEqual(created.scheduled_end_time, time(10, 30))
        self.assertFalse(created.is_published)


class ReferenceCatalogTest(SimpleTestCase):

    def test_interface_cannot_be_instantiated(self):
        with self.assertRaises(TypeError):
            ReferenceCatalog()

    def test_partial_catalog_cannot_be_instantiated(self):
        class SubjectsOnly(ReferenceCatalog):
            def lookup_subject(self, subject_id):
                return None

        with self.assertRaises(TypeError):
            SubjectsOnly()


# ── Users & profiles ──────────────────────────────────────────────────────

class UserProfileSignalTest(TestCase):

    def test_new_user_gets_examiner_profile(self):
        user = get_user_model().objects.create_user(username='clerk', password='ClerkPass123!')
        self.assertEqual(user.profile.role, UserProfile.ROLE_EXAMINER)
        self.assertFalse(user.profile.is_hq)

    def test_superuser_gets_super_admin_profile(self):
        user = get_user_model().objects.create_superuser(
            username='root', email='root@portal.local', password='RootPass123!',
        )
        self.assertEqual(UserProfile.objects.get(user=user).role, UserProfile.ROLE_SUPER_ADMIN)


# ── Management commands ───────────────────────────────────────────────────

class ManagementCommandTest(TestCase):

    def test_seed_reference_data_is_idempotent(self):
        call_command('seed_reference_data', '--year', '2026', stdout=StringIO())
        counts = (ExamYear.objects.count(), Subject.objects.count(), ExamCenter.objects.count())
        call_command('seed_reference_data', '--year', '2026', stdout=StringIO())
        self.assertEqual(
            (ExamYear.objects.count(), Subject.objects.count(), ExamCenter.objects.count()), counts,
        )
        self.assertEqual(ExamYear.objects.get(year=2026).name, '2026/2027')

    def test_create_center_admin(self):
        center = ExamCenter.objects.create(code='C-9', name='Ninth Center')
        call_command(
            'create_admin', '--username', 'ninth', '--password', 'NinthPass123!',
            '--role', 'center_admin', '--center', 'C-9', stdout=StringIO(),
        )
        profile = UserProfile.objects.get(user__username='ninth')
        self.assertEqual(profile.role, UserProfile.ROLE_CENTER_ADMIN)
        self.assertEqual(profile.center, center)

    def test_center_admin_requires_known_center(self):
        with self.assertRaises(CommandError):
            call_command(
                'create_admin', '--username', 'nobody', '--password', 'x',
                '--role', 'center_admin', '--center', 'missing', stdout=StringIO(),
            )


# ── Login / logout ────────────────────────────────────────────────────────

class LoginViewTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.hq = get_user_model().objects.create_user(username='hq', password='HqPass123!')
        cls.hq.profile.role = UserProfile.ROLE_EXAMINATION_ADMIN
        cls.hq.profile.save()
        cls.clerk = get_user_model().objects.create_user(username='clerk', password='ClerkPass123!')

    def test_login_page_renders(self):
        resp = self.client.get(reverse('login'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Sign in')

    def test_hq_login_redirects_to_timetable_api(self):
        resp = self.client.post(reverse('login'), {'username': 'hq', 'password': 'HqPass123!'})
        self.assertRedirects(resp, reverse('creator_api:list_schedules'), fetch_redirect_response=False)
        self.assertTrue(AuditLog.objects.filter(action='LOGIN', username='hq').exists())

    def test_center_staff_login_redirects_to_field_api(self):
        resp = self.client.post(reverse('login'), {'username': 'clerk', 'password': 'ClerkPass123!'})
        self.assertRedirects(
            resp, reverse('fieldops_api:published_schedules'), fetch_redirect_response=False,
        )

    def test_bad_password(self):
        resp = self.client.post(reverse('login'), {'username': 'hq', 'password': 'wrong'})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Invalid username or password.')

    def test_logout(self):
        self.client.force_login(self.clerk)
        resp = self.client.get(reverse('logout'))
        self.assertRedirects(resp, reverse('login'), fetch_redirect_response=False)
        self.assertTrue(AuditLog.objects.filter(action='LOGOUT', username='clerk').exists())
