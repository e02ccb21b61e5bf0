"""
Management command to produce PORTAL_ADMIN_PASSWORD_HASH.

Usage:
    python manage.py hash_admin_password
    python manage.py hash_admin_password --password 's3cret'
"""
import getpass

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Hash an admin password for the PORTAL_ADMIN_PASSWORD_HASH setting'

    def add_arguments(self, parser):
        parser.add_argument('--password', help='Password to hash (prompted for when omitted)')

    def handle(self, *args, **options):
        password = options['password']
        if password is None:
            password = getpass.getpass('Admin password: ')
            if password != getpass.getpass('Admin password (again): '):
                raise CommandError('Passwords do not match')

        if not password:
            raise CommandError('Password must not be empty')

        self.stdout.write(make_password(password))
