"""
Management command to create an admin account or promote an existing user
Usage: python manage.py create_admin --email admin@example.com --name "Store Admin" --password secret123
"""
from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create an admin user, or promote an existing user to the admin role'

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True, help='Email address of the admin')
        parser.add_argument('--name', default='Administrator', help='Display name')
        parser.add_argument('--password', help='Password (required when creating a new user)')
        parser.add_argument(
            '--staff',
            action='store_true',
            help='Also grant Django admin site access',
        )

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        user = User.objects.filter(email=email).first()

        if user:
            user.role = User.ROLE_ADMIN
            if options['staff']:
                user.is_staff = True
            if options['password']:
                user.set_password(options['password'])
            user.save()
            self.stdout.write(self.style.SUCCESS(f'✓ Promoted {email} to admin'))
            return

        if not options['password']:
            raise CommandError('--password is required when creating a new admin')

        User.objects.create_user(
            email=email,
            password=options['password'],
            name=options['name'],
            role=User.ROLE_ADMIN,
            is_staff=options['staff'],
            is_verified=True,
        )
        self.stdout.write(self.style.SUCCESS(f'✓ Created admin {email}'))
