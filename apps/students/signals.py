# students/signals.py

"""
Students Signals
- TrackSelection invariant enforcement (previous track / admin change stamp)
"""

from django.db.models.signals import pre_save
from django.dispatch import receiver
import logging

from .models import TrackSelection

logger = logging.getLogger(__name__)


# =============================================================================
# TRACK SELECTION SIGNALS
# =============================================================================

@receiver(pre_save, sender=TrackSelection)
def validate_track_selection(sender, instance, **kwargs):
    """
    Refuse to store a selection whose change-tracking fields disagree.

    previous_track is set iff track_changed_by_admin_at is set, and never
    equals finalized_track.
    """
    instance.clean()
