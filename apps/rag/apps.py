from django.apps import AppConfig


class RagConfig(AppConfig):
    name = 'apps.rag'
    verbose_name = 'Cited Answering Pipeline'
