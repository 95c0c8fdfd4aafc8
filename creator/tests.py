"""
Creator app tests – HQ timetable API, monitoring endpoints and access control.
"""
import json
from datetime import date, datetime, time, timezone as dt_timezone
from io import BytesIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.test import TestCase
from django.urls import reverse

from core.models import (
    AuditLog, ExamCenter, ExamSchedule, ExamSession, ExamYear, Subject, UserProfile,
)
from core.services import schedules as schedule_service
from core.services import sessions as session_service

User = get_user_model()
UTC = dt_timezone.utc


def make_user(username, role, center=None, perms=()):
    user = User.objects.create_user(username=username, password='PortalPass123!')
    profile = user.profile
    profile.role = role
    profile.center = center
    profile.save()
    for codename in perms:
        user.user_permissions.add(Permission.objects.get(codename=codename))
    return user


class CreatorTestBase(TestCase):
    """Shared test fixtures for creator tests."""

    @classmethod
    def setUpTestData(cls):
        cls.year = ExamYear.objects.create(year=2025, name='2025/2026')
        cls.maths = Subject.objects.create(code='MATH6', name='Mathematics', grade=6)
        cls.science = Subject.objects.create(code='SCI6', name='Science', grade=6)
        cls.center = ExamCenter.objects.create(code='C-A', name='Alpha Center', region='North')

        cls.hq = make_user('hq_admin', UserProfile.ROLE_EXAMINATION_ADMIN)
        cls.chief = make_user(
            'chief', UserProfile.ROLE_EXAMINATION_ADMIN,
            perms=('can_unpublish_schedule', 'can_cancel_session'),
        )
        cls.center_admin = make_user('alpha_admin', UserProfile.ROLE_CENTER_ADMIN, center=cls.center)

    def setUp(self):
        self.client.force_login(self.hq)

    def create_schedule(self, subject=None, start=time(9, 0), duration=120, published=False):
        subject = subject or self.maths
        schedule = schedule_service.create_schedule(
            self.year.id, subject.id, subject.grade, date(2025, 6, 2), start, duration,
        )
        if published:
            schedule = schedule_service.publish_schedule(schedule.id)
        return schedule

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def patch_json(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type='application/json')


# ── Exam schedules ────────────────────────────────────────────────────────

class ScheduleApiTest(CreatorTestBase):

    def test_create_schedule(self):
        resp = self.post_json(reverse('creator_api:list_schedules'), {
            'exam_year_id': self.year.id,
            'subject_id': self.maths.id,
            'grade': 6,
            'exam_date': '2025-06-02',
            'scheduled_start_time': '09:00',
            'duration_minutes': 120,
            'venue': 'Main hall',
        })
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data['scheduled_end_time'], '11:00')
        self.assertFalse(data['is_published'])
        self.assertEqual(data['subject_name'], 'Mathematics')
        self.assertTrue(AuditLog.objects.filter(action='CREATE', resource_id=data['id']).exists())

    def test_create_rejects_short_duration(self):
        resp = self.post_json(reverse('creator_api:list_schedules'), {
            'exam_year_id': self.year.id, 'subject_id': self.maths.id, 'grade': 6,
            'exam_date': '2025-06-02', 'scheduled_start_time': '09:00', 'duration_minutes': 5,
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['code'], 'invalid')
        self.assertEqual(ExamSchedule.objects.count(), 0)

    def test_create_rejects_grade_mismatch(self):
        resp = self.post_json(reverse('creator_api:list_schedules'), {
            'exam_year_id': self.year.id, 'subject_id': self.maths.id, 'grade': 8,
            'exam_date': '2025-06-02', 'scheduled_start_time': '09:00', 'duration_minutes': 60,
        })
        self.assertEqual(resp.status_code, 400)

    def test_create_with_missing_fields(self):
        resp = self.post_json(reverse('creator_api:list_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('subject_id', resp.json()['error'])

    def test_create_with_invalid_json(self):
        resp = self.client.post(
            reverse('creator_api:list_schedules'), data='not json', content_type='application/json',
        )
        self.assertEqual(resp.status_code, 400)

    def test_list_requires_exam_year(self):
        resp = self.client.get(reverse('creator_api:list_schedules'))
        self.assertEqual(resp.status_code, 400)

    def test_list_includes_drafts_in_order(self):
        later = self.create_schedule(subject=self.science, start=time(13, 0), duration=60)
        earlier = self.create_schedule(published=True)
        resp = self.client.get(reverse('creator_api:list_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([s['id'] for s in resp.json()], [str(earlier.id), str(later.id)])

    def test_detail_reports_session_count(self):
        schedule = self.create_schedule(published=True)
        session_service.record_start(schedule.id, self.center.id, datetime(2025, 6, 2, 9, 0, tzinfo=UTC))
        resp = self.client.get(reverse('creator_api:schedule_detail', args=[schedule.id]))
        self.assertEqual(resp.json()['session_count'], 1)

    def test_detail_not_found(self):
        resp = self.client.get(
            reverse('creator_api:schedule_detail', args=['00000000-0000-0000-0000-000000000000'])
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()['code'], 'not_found')

    def test_patch_draft(self):
        schedule = self.create_schedule()
        resp = self.patch_json(
            reverse('creator_api:schedule_detail', args=[schedule.id]),
            {'scheduled_start_time': '10:00', 'venue': 'Hall B'},
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['scheduled_end_time'], '12:00')
        self.assertEqual(data['venue'], 'Hall B')
        self.assertEqual(data['duration_minutes'], 120)

    def test_patch_with_null_required_field_rejected(self):
        schedule = self.create_schedule()
        url = reverse('creator_api:schedule_detail', args=[schedule.id])
        for field in ('scheduled_start_time', 'exam_date', 'duration_minutes', 'subject_id', 'grade'):
            resp = self.patch_json(url, {field: None})
            self.assertEqual(resp.status_code, 400, field)
            self.assertEqual(resp.json()['code'], 'invalid')
            self.assertIn(field, resp.json()['error'])
        schedule.refresh_from_db()
        self.assertEqual(schedule.scheduled_start_time, time(9, 0))
        self.assertEqual(schedule.exam_date, date(2025, 6, 2))

    def test_patch_with_null_venue_clears_it(self):
        schedule = self.create_schedule()
        self.patch_json(reverse('creator_api:schedule_detail', args=[schedule.id]), {'venue': 'Hall B'})
        resp = self.patch_json(reverse('creator_api:schedule_detail', args=[schedule.id]), {'venue': None})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['venue'], '')

    def test_patch_published_conflicts(self):
        schedule = self.create_schedule(published=True)
        resp = self.patch_json(
            reverse('creator_api:schedule_detail', args=[schedule.id]), {'duration_minutes': 90},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()['code'], 'conflict')

    def test_publish_and_publish_again(self):
        schedule = self.create_schedule()
        url = reverse('creator_api:publish_schedule', args=[schedule.id])
        resp = self.client.post(url)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['is_published'])
        self.assertEqual(self.client.post(url).status_code, 409)

    def test_delete_draft(self):
        schedule = self.create_schedule()
        resp = self.client.delete(reverse('creator_api:schedule_detail', args=[schedule.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(ExamSchedule.objects.filter(pk=schedule.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='DELETE').exists())

    def test_delete_published_conflicts(self):
        schedule = self.create_schedule(published=True)
        resp = self.client.delete(reverse('creator_api:schedule_detail', args=[schedule.id]))
        self.assertEqual(resp.status_code, 409)
        self.assertTrue(ExamSchedule.objects.filter(pk=schedule.id).exists())


class UnpublishPermissionTest(CreatorTestBase):

    def setUp(self):
        super().setUp()
        self.schedule = self.create_schedule(published=True)
        self.url = reverse('creator_api:unpublish_schedule', args=[self.schedule.id])

    def test_hq_without_permission_forbidden(self):
        resp = self.client.post(self.url)
        self.assertEqual(resp.status_code, 403)
        self.schedule.refresh_from_db()
        self.assertTrue(self.schedule.is_published)

    def test_permitted_user_can_unpublish(self):
        self.client.force_login(self.chief)
        resp = self.client.post(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()['is_published'])
        self.assertTrue(AuditLog.objects.filter(action='UNPUBLISH', username='chief').exists())

    def test_unpublish_blocked_once_sessions_exist(self):
        session_service.record_start(
            self.schedule.id, self.center.id, datetime(2025, 6, 2, 9, 0, tzinfo=UTC),
        )
        self.client.force_login(self.chief)
        self.assertEqual(self.client.post(self.url).status_code, 409)


# ── Sessions ──────────────────────────────────────────────────────────────

class CancelSessionApiTest(CreatorTestBase):

    def setUp(self):
        super().setUp()
        self.schedule = self.create_schedule(published=True)
        self.url = reverse('creator_api:cancel_session')

    def test_requires_permission(self):
        resp = self.post_json(self.url, {'schedule_id': str(self.schedule.id), 'center_id': self.center.id})
        self.assertEqual(resp.status_code, 403)

    def test_cancel_not_started_sitting(self):
        self.client.force_login(self.chief)
        resp = self.post_json(self.url, {
            'schedule_id': str(self.schedule.id), 'center_id': self.center.id, 'reason': 'Flooding',
        })
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['status'], 'cancelled')
        self.assertEqual(data['cancellation_reason'], 'Flooding')
        self.assertTrue(AuditLog.objects.filter(action='CANCEL').exists())

    def test_cancel_twice_conflicts(self):
        self.client.force_login(self.chief)
        payload = {'schedule_id': str(self.schedule.id), 'center_id': self.center.id}
        self.post_json(self.url, payload)
        self.assertEqual(self.post_json(self.url, payload).status_code, 409)


# ── Monitoring ────────────────────────────────────────────────────────────

class MonitoringApiTest(CreatorTestBase):

    def setUp(self):
        super().setUp()
        self.schedule = self.create_schedule(published=True)
        self.create_schedule(subject=self.science, start=time(13, 0), duration=60, published=True)
        session_service.record_start(
            self.schedule.id, self.center.id, datetime(2025, 6, 2, 9, 17, tzinfo=UTC),
            late_start_reason_code='transport_delay',
        )

    def test_monitoring_summary(self):
        resp = self.client.get(reverse('creator_api:monitoring'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['summary']['total'], 2)
        self.assertEqual(data['summary']['lateStart'], 1)
        self.assertEqual(data['summary']['notStarted'], 1)
        self.assertEqual(data['sessions'][0]['late_start_minutes'], 17)
        self.assertEqual(data['scope']['exam_year'], '2025/2026')

    def test_monitoring_bad_date(self):
        resp = self.client.get(
            reverse('creator_api:monitoring'), {'exam_year_id': self.year.id, 'exam_date': 'June'},
        )
        self.assertEqual(resp.status_code, 400)

    def test_monitoring_unknown_year(self):
        resp = self.client.get(reverse('creator_api:monitoring'), {'exam_year_id': 9999})
        self.assertEqual(resp.status_code, 404)

    def test_monitoring_does_not_write(self):
        before = ExamSession.objects.count()
        self.client.get(reverse('creator_api:monitoring'), {'exam_year_id': self.year.id})
        self.assertEqual(ExamSession.objects.count(), before)

    def test_xlsx_export(self):
        from openpyxl import load_workbook

        resp = self.client.get(
            reverse('creator_api:monitoring_xlsx'),
            {'exam_year_id': self.year.id, 'exam_date': '2025-06-02'},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertIn('spreadsheetml', resp['Content-Type'])
        self.assertIn('monitoring_2025_2026_2025-06-02.xlsx', resp['Content-Disposition'])

        ws = load_workbook(BytesIO(resp.content)).active
        self.assertEqual(ws.cell(row=5, column=1).value, 'Exam Date')
        self.assertEqual(ws.cell(row=6, column=2).value, 'Alpha Center')
        self.assertEqual(ws.cell(row=6, column=10).value, 'Started Late')
        self.assertEqual(ws.cell(row=6, column=12).value, 'Transport Delay')
        self.assertTrue(AuditLog.objects.filter(action='EXPORT').exists())


# ── Security ──────────────────────────────────────────────────────────────

class CreatorSecurityTest(CreatorTestBase):

    def test_anonymous_redirected_to_login(self):
        self.client.logout()
        resp = self.client.get(reverse('creator_api:list_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 302)
        self.assertIn('/login/', resp.url)

    def test_center_admin_blocked_from_creator_api(self):
        self.client.force_login(self.center_admin)
        resp = self.client.get(reverse('creator_api:list_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['code'], 'forbidden')

    def test_center_admin_cannot_create(self):
        self.client.force_login(self.center_admin)
        resp = self.post_json(reverse('creator_api:list_schedules'), {
            'exam_year_id': self.year.id, 'subject_id': self.maths.id, 'grade': 6,
            'exam_date': '2025-06-02', 'scheduled_start_time': '09:00', 'duration_minutes': 60,
        })
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(ExamSchedule.objects.count(), 0)

    def test_superuser_without_profile_role_is_hq(self):
        root = User.objects.create_superuser(
            username='root', email='root@portal.local', password='RootPass123!',
        )
        self.client.force_login(root)
        resp = self.client.get(reverse('creator_api:list_schedules'), {'exam_year_id': self.year.id})
        self.assertEqual(resp.status_code, 200)
