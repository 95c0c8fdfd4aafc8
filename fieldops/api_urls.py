"""Field API URLs – exam center reporting under /api/field/."""
from django.urls import path
from .views import api

app_name = 'fieldops_api'

urlpatterns = [
    path('exam-schedules', api.published_schedules, name='published_schedules'),
    path('exam-sessions/record-start', api.record_start, name='record_start'),
    path('exam-sessions/<uuid:session_id>', api.session_detail, name='session_detail'),
    path('exam-sessions/<uuid:session_id>/record-end', api.record_end, name='record_end'),
]
