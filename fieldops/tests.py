"""
Field app tests – center reporting of starts and ends, and center scoping.
"""
import json
from datetime import date, datetime, time, timezone as dt_timezone
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from core.models import (
    AuditLog, ExamCenter, ExamSession, ExamYear, SessionStatus, Subject, UserProfile,
)
from core.services import schedules as schedule_service
from core.services import sessions as session_service

User = get_user_model()
UTC = dt_timezone.utc


class FieldTestBase(TestCase):
    """Shared fixtures for field reporting tests."""

    @classmethod
    def setUpTestData(cls):
        cls.year = ExamYear.objects.create(year=2025, name='2025/2026')
        cls.maths = Subject.objects.create(code='MATH6', name='Mathematics', grade=6)
        cls.science = Subject.objects.create(code='SCI6', name='Science', grade=6)
        cls.alpha = ExamCenter.objects.create(code='C-A', name='Alpha Center')
        cls.beta = ExamCenter.objects.create(code='C-B', name='Beta Center')

        cls.reporter = User.objects.create_user(username='alpha_admin', password='FieldPass123!')
        profile = cls.reporter.profile
        profile.role = UserProfile.ROLE_CENTER_ADMIN
        profile.center = cls.alpha
        profile.save()

        cls.examiner = User.objects.create_user(username='examiner1', password='ExamPass123!')

    def setUp(self):
        self.client.force_login(self.reporter)
        self.schedule = schedule_service.create_schedule(
            self.year.id, self.maths.id, 6, date(2025, 6, 2), time(9, 0), 120,
        )
        self.schedule = schedule_service.publish_schedule(self.schedule.id)

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def start_payload(self, **overrides):
        payload = {
            'schedule_id': str(self.schedule.id),
            'center_id': self.alpha.id,
            'actual_start_time': '2025-06-02T09:00:00+00:00',
        }
        payload.update(overrides)
        return payload


class PublishedScheduleApiTest(FieldTestBase):

    def test_only_published_schedules_listed(self):
        schedule_service.create_schedule(self.year.id, self.science.id, 6, date(2025, 6, 2), time(13, 0), 60)
        resp = self.client.get(reverse('fieldops_api:published_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([s['id'] for s in resp.json()], [str(self.schedule.id)])

    def test_examiner_can_read_timetable(self):
        self.client.force_login(self.examiner)
        resp = self.client.get(reverse('fieldops_api:published_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 200)


class RecordStartApiTest(FieldTestBase):

    def test_on_time_start(self):
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(candidate_count=42))
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data['status'], 'started_on_time')
        self.assertEqual(data['late_start_minutes'], 0)
        self.assertEqual(data['candidate_count'], 42)
        self.assertTrue(AuditLog.objects.filter(action='START', username='alpha_admin').exists())

    def test_late_start_with_reason(self):
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(
            actual_start_time='2025-06-02T09:17:00+00:00',
            late_start_reason_code='weather',
            late_start_reason_details='Heavy rain',
        ))
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data['status'], 'started_late')
        self.assertEqual(data['late_start_minutes'], 17)
        self.assertEqual(data['late_start_reason_code'], 'weather')

    def test_start_defaults_to_now(self):
        now = datetime(2025, 6, 2, 9, 4, 30, tzinfo=UTC)
        payload = self.start_payload()
        del payload['actual_start_time']
        with mock.patch('django.utils.timezone.now', return_value=now):
            resp = self.post_json(reverse('fieldops_api:record_start'), payload)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['late_start_minutes'], 5)

    def test_duplicate_start_conflicts(self):
        url = reverse('fieldops_api:record_start')
        self.post_json(url, self.start_payload())
        resp = self.post_json(url, self.start_payload(actual_start_time='2025-06-02T09:05:00+00:00'))
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(ExamSession.objects.count(), 1)

    def test_unpublished_schedule_not_found(self):
        draft = schedule_service.create_schedule(
            self.year.id, self.science.id, 6, date(2025, 6, 2), time(13, 0), 60,
        )
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(schedule_id=str(draft.id)))
        self.assertEqual(resp.status_code, 404)

    def test_unknown_reason_code_rejected(self):
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(
            late_start_reason_code='aliens',
        ))
        self.assertEqual(resp.status_code, 400)

    def test_negative_candidate_count_rejected(self):
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(candidate_count=-3))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(ExamSession.objects.count(), 0)

    def test_other_center_forbidden(self):
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload(center_id=self.beta.id))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(ExamSession.objects.count(), 0)

    def test_examiner_without_center_forbidden(self):
        self.client.force_login(self.examiner)
        resp = self.post_json(reverse('fieldops_api:record_start'), self.start_payload())
        self.assertEqual(resp.status_code, 403)

    def test_invalid_json(self):
        resp = self.client.post(
            reverse('fieldops_api:record_start'), data='{broken', content_type='application/json',
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error'], 'Invalid JSON body')

    def test_get_not_allowed(self):
        resp = self.client.get(reverse('fieldops_api:record_start'))
        self.assertEqual(resp.status_code, 405)


class RecordEndApiTest(FieldTestBase):

    def setUp(self):
        super().setUp()
        self.session = session_service.record_start(
            self.schedule.id, self.alpha.id, datetime(2025, 6, 2, 9, 17, tzinfo=UTC),
        )
        self.url = reverse('fieldops_api:record_end', args=[self.session.id])

    def test_end_on_schedule(self):
        resp = self.post_json(self.url, {'actual_end_time': '2025-06-02T11:00:00+00:00'})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['status'], SessionStatus.COMPLETED)
        self.assertEqual(data['end_status'], 'ended_on_time')
        self.assertEqual(data['start_status'], 'started_late')
        self.assertEqual(data['late_start_minutes'], 17)

    def test_late_end(self):
        resp = self.post_json(self.url, {'actual_end_time': '2025-06-02T11:08:00+00:00'})
        self.assertEqual(resp.json()['late_end_minutes'], 8)
        self.assertTrue(resp.json()['ended_late'])

    def test_end_twice_conflicts(self):
        self.post_json(self.url, {'actual_end_time': '2025-06-02T11:00:00+00:00'})
        resp = self.post_json(self.url, {'actual_end_time': '2025-06-02T11:30:00+00:00'})
        self.assertEqual(resp.status_code, 409)

    def test_end_before_start_rejected(self):
        resp = self.post_json(self.url, {'actual_end_time': '2025-06-02T09:00:00+00:00'})
        self.assertEqual(resp.status_code, 400)
        self.session.refresh_from_db()
        self.assertIsNone(self.session.actual_end_time)

    def test_unknown_session(self):
        url = reverse('fieldops_api:record_end', args=['00000000-0000-0000-0000-000000000000'])
        resp = self.post_json(url, {'actual_end_time': '2025-06-02T11:00:00+00:00'})
        self.assertEqual(resp.status_code, 404)

    def test_other_center_cannot_end(self):
        other = User.objects.create_user(username='beta_admin', password='FieldPass123!')
        other.profile.role = UserProfile.ROLE_CENTER_ADMIN
        other.profile.center = self.beta
        other.profile.save()
        self.client.force_login(other)
        resp = self.post_json(self.url, {'actual_end_time': '2025-06-02T11:00:00+00:00'})
        self.assertEqual(resp.status_code, 403)

    def test_session_detail(self):
        resp = self.client.get(reverse('fieldops_api:session_detail', args=[self.session.id]))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['center']['name'], 'Alpha Center')
        self.assertEqual(data['schedule']['scheduled_end_time'], '11:00')
