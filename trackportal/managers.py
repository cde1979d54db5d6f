# managers.py

from django.db import models
import logging

logger = logging.getLogger(__name__)


# ==============================================================================
# PROJECT QUERYSETS
# ==============================================================================

class ProjectQuerySet(models.QuerySet):
    """Filters shared by the registration flow and the track cascades"""

    def live(self):
        """Projects that still take part in a workflow (not cancelled)"""
        return self.exclude(status='cancelled')

    def resettable(self):
        """Projects a cascade is allowed to touch"""
        return self.exclude(status__in=['cancelled', 'completed'])

    def for_semester(self, semester):
        return self.filter(semester=semester)

    def of_types(self, project_types):
        return self.filter(project_type__in=list(project_types))

    def owned_by(self, student):
        """Projects owned directly by the student (not through a group)"""
        return self.filter(student=student)

    def shared_with(self, student):
        """Group projects where the student is an active group member"""
        return self.filter(
            group__isnull=False,
            group__members__student=student,
            group__members__is_active=True,
        ).distinct()


class ProjectManager(models.Manager.from_queryset(ProjectQuerySet)):
    pass


# ==============================================================================
# INTERNSHIP APPLICATION QUERYSETS
# ==============================================================================

class InternshipApplicationQuerySet(models.QuerySet):

    def summer(self):
        return self.filter(type='summer')

    def for_student(self, student, semester=None):
        queryset = self.filter(student=student)
        if semester is not None:
            queryset = queryset.filter(semester=semester)
        return queryset

    def newest_first(self):
        return self.order_by('-created_at')

    def latest_created(self):
        """The authoritative (most recently created) application, or None"""
        return self.newest_first().first()


class InternshipApplicationManager(models.Manager.from_queryset(InternshipApplicationQuerySet)):
    pass
