"""
Fact URL routing.
"""
from django.urls import path

from apps.facts.views import fact_reference

urlpatterns = [
    path('<str:identifier>', fact_reference, name='fact-reference'),
]
