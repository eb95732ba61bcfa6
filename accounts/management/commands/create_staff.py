from django.core.management.base import BaseCommand, CommandError

from accounts.services import AuthService
from coffeehouse.exceptions import CounterError
from coffeehouse.permissions import STAFF


class Command(BaseCommand):
    help = 'Create a staff account'

    def add_arguments(self, parser):
        parser.add_argument('--name', required=True)
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', required=True)

    def handle(self, *args, **options):
        try:
            user = AuthService().create_user(
                options['name'], options['email'], options['password'], role=STAFF
            )
        except CounterError as exc:
            raise CommandError(str(exc.detail))

        self.stdout.write(
            self.style.SUCCESS(f"Created staff account {user['email']} ({user['id']})")
        )
