"""
Reference catalogs: exam years, subjects and exam centers.

The scheduling core only reads these (see core.catalog); they are
maintained through the Django admin.
"""
from django.db import models


class ExamYear(models.Model):
    """An examination year, e.g. 2025/2026."""

    id = models.AutoField(primary_key=True)
    year = models.IntegerField(unique=True)
    name = models.CharField(max_length=50)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'exam_years'
        ordering = ['-year']

    def __str__(self):
        return self.name


class Subject(models.Model):
    """A subject examined at one grade level."""

    id = models.AutoField(primary_key=True)
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    grade = models.IntegerField()
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'subjects'
        ordering = ['grade', 'name']

    def __str__(self):
        return f'{self.code}: {self.name} (Grade {self.grade})'


class ExamCenter(models.Model):
    """A physical location where sittings take place."""

    id = models.AutoField(primary_key=True)
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    region = models.CharField(max_length=100, blank=True, default='')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'exam_centers'
        ordering = ['name']

    def __str__(self):
        return self.name
