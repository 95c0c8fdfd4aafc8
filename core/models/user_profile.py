"""
UserProfile model – portal role and home exam center for each user.
"""
from django.db import models
from django.conf import settings


class UserProfile(models.Model):
    """
    One-to-one extension for the auth user.

    HQ roles manage the timetable and read monitoring; center admins report
    starts and ends for their own center only.
    """

    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_EXAMINATION_ADMIN = 'examination_admin'
    ROLE_CENTER_ADMIN = 'center_admin'
    ROLE_EXAMINER = 'examiner'
    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Admin'),
        (ROLE_EXAMINATION_ADMIN, 'Examination Admin'),
        (ROLE_CENTER_ADMIN, 'Center Admin'),
        (ROLE_EXAMINER, 'Examiner'),
    ]
    HQ_ROLES = (ROLE_SUPER_ADMIN, ROLE_EXAMINATION_ADMIN)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='profile',
    )
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default=ROLE_EXAMINER)
    center = models.ForeignKey(
        'core.ExamCenter', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='staff',
        help_text='Exam center a center admin reports for.',
    )

    class Meta:
        db_table = 'user_profiles'
        verbose_name = 'User Profile'
        verbose_name_plural = 'User Profiles'

    def __str__(self):
        return f'{self.user.username} ({self.get_role_display()})'

    @property
    def is_hq(self):
        return self.role in self.HQ_ROLES
