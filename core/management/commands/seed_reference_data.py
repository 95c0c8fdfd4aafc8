"""
Management command: seed_reference_data

Inserts a demo exam year, subjects and exam centers so the timetable API
has something to point at. Existing rows (matched by year / code) are left
untouched, so the command can be re-run safely.

Usage:
  python manage.py seed_reference_data --year 2025
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import ExamCenter, ExamYear, Subject

# ─────────────────────────────────────────────────────────────────────
# DEMO CATALOG
# ─────────────────────────────────────────────────────────────────────
SUBJECTS = [
    # (code, name, grade)
    ('MATH6', 'Mathematics', 6),
    ('ENG6', 'English', 6),
    ('SCI6', 'Integrated Science', 6),
    ('MATH8', 'Mathematics', 8),
    ('ENG8', 'English', 8),
    ('SCI8', 'Integrated Science', 8),
    ('SOC8', 'Social Studies', 8),
    ('MATH12', 'Mathematics', 12),
    ('PHY12', 'Physics', 12),
    ('CHEM12', 'Chemistry', 12),
    ('BIO12', 'Biology', 12),
]

CENTERS = [
    # (code, name, region)
    ('NC-001', 'Northgate Secondary School', 'North'),
    ('NC-002', 'Hillview Academy', 'North'),
    ('SC-001', 'Riverside High School', 'South'),
    ('SC-002', 'Harbour Community College', 'South'),
    ('EC-001', 'Eastfield Grammar School', 'East'),
    ('WC-001', 'Westbrook Secondary School', 'West'),
]


class Command(BaseCommand):
    help = 'Seed a demo exam year, subjects and exam centers'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, default=2025)

    @transaction.atomic
    def handle(self, *args, **options):
        year = options['year']
        exam_year, created = ExamYear.objects.get_or_create(
            year=year, defaults={'name': f'{year}/{year + 1}'},
        )
        self.stdout.write(
            f'{"Created" if created else "Found"} exam year {exam_year.name} (id={exam_year.id})'
        )

        new_subjects = 0
        for code, name, grade in SUBJECTS:
            _, created = Subject.objects.get_or_create(
                code=code, defaults={'name': name, 'grade': grade},
            )
            new_subjects += created

        new_centers = 0
        for code, name, region in CENTERS:
            _, created = ExamCenter.objects.get_or_create(
                code=code, defaults={'name': name, 'region': region},
            )
            new_centers += created

        self.stdout.write(self.style.SUCCESS(
            f'Seeded {new_subjects} subject(s) and {new_centers} center(s).'
        ))
