from django.apps import AppConfig


class FieldOpsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'fieldops'
    verbose_name = 'Exam Center Reporting'
