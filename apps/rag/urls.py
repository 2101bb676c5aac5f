"""
RAG URL routing.
"""
from django.urls import path

from apps.rag.views import AskView, IndexView

urlpatterns = [
    path('', IndexView.as_view(), name='rag-index'),
    path('api/ask', AskView.as_view(), name='rag-ask'),
]
