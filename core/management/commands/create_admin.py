"""
Management command: create_admin

Creates an HQ administrator (or a center admin) interactively or via flags.
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from core.models import ExamCenter, UserProfile


class Command(BaseCommand):
    help = 'Create a portal administrator account'

    def add_arguments(self, parser):
        parser.add_argument('--username', type=str, default='admin')
        parser.add_argument('--email', type=str, default='admin@portal.local')
        parser.add_argument('--password', type=str, default=None)
        parser.add_argument(
            '--role', type=str, default=UserProfile.ROLE_SUPER_ADMIN,
            choices=[code for code, _ in UserProfile.ROLE_CHOICES],
        )
        parser.add_argument('--center', type=str, default=None,
                            help='Exam center code (required for center_admin)')

    def handle(self, *args, **options):
        User = get_user_model()
        username = options['username']
        role = options['role']

        if User.objects.filter(username=username).exists():
            self.stdout.write(self.style.WARNING(f'User "{username}" already exists.'))
            return

        center = None
        if role == UserProfile.ROLE_CENTER_ADMIN:
            if not options['center']:
                raise CommandError('--center is required for center admins.')
            center = ExamCenter.objects.filter(code=options['center']).first()
            if center is None:
                raise CommandError(f'Exam center "{options["center"]}" does not exist.')

        password = options['password']
        if not password:
            import getpass
            password = getpass.getpass('Password: ')
            confirm = getpass.getpass('Confirm password: ')
            if password != confirm:
                self.stdout.write(self.style.ERROR('Passwords do not match.'))
                return

        if role == UserProfile.ROLE_SUPER_ADMIN:
            user = User.objects.create_superuser(
                username=username, email=options['email'], password=password,
            )
        else:
            user = User.objects.create_user(
                username=username, email=options['email'], password=password,
                is_staff=role in UserProfile.HQ_ROLES,
            )

        UserProfile.objects.update_or_create(
            user=user, defaults={'role': role, 'center': center},
        )
        self.stdout.write(self.style.SUCCESS(
            f'Account created: {user.username} ({role})'
        ))
