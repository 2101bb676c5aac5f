"""
Django management command to check that the fact directory loads.

Embeds every fact exactly as the server would at startup and lists the
result, without serving anything.

Usage:
    python manage.py load_facts [--dir references]
"""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.facts.store import FactStore
from apps.rag.embeddings import get_embedding_client
from apps.rag.errors import RagError


class Command(BaseCommand):
    help = 'Load and embed the fact directory, then list the facts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dir',
            default=None,
            help='Fact directory (defaults to FACTS_DIR)',
        )

    def handle(self, *args, **options):
        directory = options['dir'] or settings.FACTS_DIR
        self.stdout.write(f'Loading facts from {directory}...')

        try:
            store = FactStore.load(directory, get_embedding_client())
        except RagError as e:
            raise CommandError(f'Failed to load facts: {e}')

        for fact in store:
            self.stdout.write(f'  {fact.identifier} ({len(fact.text)} chars)')

        self.stdout.write(self.style.SUCCESS(
            f'Loaded {len(store)} facts (dimension={store.dimension})'
        ))
