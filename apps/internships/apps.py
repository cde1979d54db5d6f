# internships/apps.py

from django.apps import AppConfig


class InternshipsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "internships"
    verbose_name = "Internships"
