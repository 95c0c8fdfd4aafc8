import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ExamYear',
            fields=[
                ('id', models.AutoField(primary_key=True, serialize=False)),
                ('year', models.IntegerField(unique=True)),
                ('name', models.CharField(max_length=50)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'exam_years',
                'ordering': ['-year'],
            },
        ),
        migrations.CreateModel(
            name='Subject',
            fields=[
                ('id', models.AutoField(primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('grade', models.IntegerField()),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'subjects',
                'ordering': ['grade', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ExamCenter',
            fields=[
                ('id', models.AutoField(primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('region', models.CharField(blank=True, default='', max_length=100)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'exam_centers',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ExamSchedule',
            fields=[
                ('created_at', models.IntegerField(blank=True, db_index=True, default=None, help_text='UTC Unix timestamp when created', null=True)),
                ('updated_at', models.IntegerField(blank=True, default=None, help_text='UTC Unix timestamp when last updated', null=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('grade', models.IntegerField()),
                ('exam_date', models.DateField()),
                ('scheduled_start_time', models.TimeField()),
                ('duration_minutes', models.PositiveIntegerField()),
                ('scheduled_end_time', models.TimeField(editable=False)),
                ('venue', models.CharField(blank=True, default='', max_length=255)),
                ('notes', models.TextField(blank=True, default='')),
                ('is_published', models.BooleanField(db_index=True, default=False)),
                ('published_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.IntegerField(blank=True, null=True)),
                ('exam_year', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='schedules', to='core.examyear')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='schedules', to='core.subject')),
            ],
            options={
                'db_table': 'exam_schedules',
                'ordering': ['exam_date', 'scheduled_start_time', 'created_at'],
                'permissions': [
                    ('can_publish_schedule', 'Can publish exam schedules'),
                    ('can_unpublish_schedule', 'Can unpublish exam schedules with no sessions'),
                ],
                'indexes': [
                    models.Index(fields=['exam_year', 'grade'], name='idx_schedule_year_grade'),
                    models.Index(fields=['exam_year', 'exam_date'], name='idx_schedule_year_date'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(duration_minutes__gt=0), name='schedule_duration_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ExamSession',
            fields=[
                ('created_at', models.IntegerField(blank=True, db_index=True, default=None, help_text='UTC Unix timestamp when created', null=True)),
                ('updated_at', models.IntegerField(blank=True, default=None, help_text='UTC Unix timestamp when last updated', null=True)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('actual_start_time', models.DateTimeField(blank=True, null=True)),
                ('actual_end_time', models.DateTimeField(blank=True, null=True)),
                ('candidate_count', models.PositiveIntegerField(blank=True, null=True)),
                ('status', models.CharField(choices=[('started_on_time', 'Started On Time'), ('started_late', 'Started Late'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, max_length=20)),
                ('started_late', models.BooleanField(default=False)),
                ('ended_late', models.BooleanField(default=False)),
                ('late_start_minutes', models.PositiveIntegerField(default=0)),
                ('late_end_minutes', models.PositiveIntegerField(default=0)),
                ('late_start_reason_code', models.CharField(blank=True, choices=[('transport_delay', 'Transport Delay'), ('weather', 'Weather Conditions'), ('security_incident', 'Security Incident'), ('materials_late', 'Materials Arrived Late'), ('staff_absence', 'Staff Absence'), ('technical_issue', 'Technical Issue'), ('venue_issue', 'Venue Issue'), ('student_delay', 'Student Delay'), ('communication_gap', 'Communication Gap'), ('other', 'Other')], max_length=30, null=True)),
                ('late_start_reason_details', models.TextField(blank=True, default='')),
                ('notes', models.TextField(blank=True, default='')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('recorded_by', models.IntegerField(blank=True, null=True)),
                ('schedule', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='core.examschedule')),
                ('center', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='core.examcenter')),
            ],
            options={
                'db_table': 'exam_sessions',
                'ordering': ['created_at'],
                'permissions': [('can_cancel_session', 'Can cancel exam sessions')],
                'constraints': [
                    models.UniqueConstraint(fields=('schedule', 'center'), name='unique_schedule_center_session'),
                    models.CheckConstraint(
                        condition=(
                            models.Q(actual_start_time__isnull=True)
                            | models.Q(actual_end_time__isnull=True)
                            | models.Q(actual_end_time__gte=models.F('actual_start_time'))
                        ),
                        name='session_end_not_before_start',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('username', models.CharField(blank=True, default='', max_length=150)),
                ('action', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('PUBLISH', 'Publish'), ('UNPUBLISH', 'Unpublish'), ('START', 'Record Start'), ('END', 'Record End'), ('CANCEL', 'Cancel'), ('EXPORT', 'Export'), ('LOGIN', 'Login'), ('LOGOUT', 'Logout')], max_length=20)),
                ('resource_type', models.CharField(max_length=50)),
                ('resource_id', models.CharField(blank=True, default='', max_length=36)),
                ('description', models.TextField(blank=True, default='')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('extra_data', models.JSONField(blank=True, null=True)),
                ('timestamp', models.IntegerField(db_index=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['user', 'action'], name='idx_audit_user_action'),
                    models.Index(fields=['resource_type', 'resource_id'], name='idx_audit_resource'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('super_admin', 'Super Admin'), ('examination_admin', 'Examination Admin'), ('center_admin', 'Center Admin'), ('examiner', 'Examiner')], default='examiner', max_length=30)),
                ('center', models.ForeignKey(blank=True, help_text='Exam center a center admin reports for.', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='staff', to='core.examcenter')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'User Profile',
                'verbose_name_plural': 'User Profiles',
                'db_table': 'user_profiles',
            },
        ),
    ]
