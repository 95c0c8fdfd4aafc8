"""
Core models package – exam scheduling and session monitoring.
"""
from .mixins import TimestampMixin
from .reference import ExamYear, Subject, ExamCenter
from .schedule import ExamSchedule
from .session import ExamSession, SessionStatus, LateStartReason
from .audit import AuditLog
from .user_profile import UserProfile

__all__ = [
    # Base
    'TimestampMixin',
    # Reference catalogs
    'ExamYear', 'Subject', 'ExamCenter',
    # Timetable
    'ExamSchedule',
    # Sessions
    'ExamSession', 'SessionStatus', 'LateStartReason',
    # Audit
    'AuditLog',
    # User profile
    'UserProfile',
]
