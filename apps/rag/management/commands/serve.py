"""
Django management command to load the facts and serve the answer page.

The fact store must load completely before the server starts; any
ingestion or embedding failure exits the process.

Usage:
    python manage.py serve [addrport]
"""
from django.core.management import call_command
from django.core.management.base import BaseCommand

from apps.rag.context import bootstrap

DEFAULT_ADDRPORT = '127.0.0.1:8080'


class Command(BaseCommand):
    help = 'Load the fact store and run the development server'

    def add_arguments(self, parser):
        parser.add_argument(
            'addrport',
            nargs='?',
            default=DEFAULT_ADDRPORT,
            help=f'Address and port to bind (default {DEFAULT_ADDRPORT})',
        )
        parser.add_argument(
            '--dir',
            default=None,
            help='Fact directory (defaults to FACTS_DIR)',
        )

    def handle(self, *args, **options):
        context = bootstrap(options['dir'])
        self.stdout.write(self.style.SUCCESS(
            f'Loaded {len(context.store)} facts'
        ))

        # The autoreloader would serve from a child process without the store
        call_command('runserver', options['addrport'], use_reloader=False)
