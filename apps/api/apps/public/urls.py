"""
Public URLs - no authentication.
"""
from django.urls import path

from .views import PublicPatientView

urlpatterns = [
    path('patients/<str:patient_id>/', PublicPatientView.as_view(), name='public-patient'),
]
