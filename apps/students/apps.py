# students/apps.py

from django.apps import AppConfig


class StudentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "students"
    verbose_name = "Students"

    def ready(self):
        """
        Import signal handlers when the app is ready.
        """
        import students.signals  # noqa: F401
