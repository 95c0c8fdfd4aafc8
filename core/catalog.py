"""
Read-only reference lookups used by the scheduling core.

Services take a catalog argument so they can run against fakes in tests;
ModelCatalog is the database-backed default.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExamYearRef:
    id: int
    name: str


@dataclass(frozen=True)
class SubjectRef:
    id: int
    name: str
    grade: int
    code: str = ''


@dataclass(frozen=True)
class CenterRef:
    id: int
    name: str
    code: str = ''
    region: str = ''


class ReferenceCatalog(ABC):
    """Lookups return None for unknown ids."""

    @abstractmethod
    def lookup_exam_year(self, exam_year_id) -> Optional[ExamYearRef]:
        raise NotImplementedError

    @abstractmethod
    def lookup_subject(self, subject_id) -> Optional[SubjectRef]:
        raise NotImplementedError

    @abstractmethod
    def lookup_center(self, center_id) -> Optional[CenterRef]:
        raise NotImplementedError


class ModelCatalog(ReferenceCatalog):
    """Catalog backed by the core reference models."""

    def lookup_exam_year(self, exam_year_id):
        from core.models import ExamYear
        year = ExamYear.objects.filter(pk=exam_year_id).first()
        if year is None:
            return None
        return ExamYearRef(id=year.id, name=year.name)

    def lookup_subject(self, subject_id):
        from core.models import Subject
        subject = Subject.objects.filter(pk=subject_id).first()
        if subject is None:
            return None
        return SubjectRef(id=subject.id, name=subject.name, grade=subject.grade, code=subject.code)

    def lookup_center(self, center_id):
        from core.models import ExamCenter
        center = ExamCenter.objects.filter(pk=center_id).first()
        if center is None:
            return None
        return CenterRef(id=center.id, name=center.name, code=center.code, region=center.region)


class CachedCatalog(ReferenceCatalog):
    """Memoizes another catalog for the duration of one call."""

    def __init__(self, catalog):
        self._catalog = catalog
        self._cache = {}

    def _get(self, kind, key, loader):
        if (kind, key) not in self._cache:
            self._cache[(kind, key)] = loader(key)
        return self._cache[(kind, key)]

    def lookup_exam_year(self, exam_year_id):
        return self._get('year', exam_year_id, self._catalog.lookup_exam_year)

    def lookup_subject(self, subject_id):
        return self._get('subject', subject_id, self._catalog.lookup_subject)

    def lookup_center(self, center_id):
        return self._get('center', center_id, self._catalog.lookup_center)
