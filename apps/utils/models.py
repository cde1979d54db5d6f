# utils/models.py

"""
Base models for the track portal with an audit trail on every record.

Key Features:
- Timestamps taken from the institute clock (core.utils.get_current_time)
- User and IP tracking from the thread-local request context
- Change reason tracking
- Field-level diff stored in AuditLog on every create/update/delete
"""

from django.db import models, transaction
import uuid
import logging

logger = logging.getLogger(__name__)


AUDIT_SKIPPED_FIELDS = (
    'id', 'created_at', 'updated_at', 'created_by_id',
    'updated_by_id', 'created_from_ip', 'updated_from_ip',
)


# =============================================================================
# BASE MODEL
# =============================================================================

class BaseModel(models.Model):
    """
    Base model with audit trail capabilities.

    Features:
    - Automatic user tracking (who created/updated)
    - IP address tracking (where operations came from)
    - Change reason tracking (why changes were made)
    - Institute-clock timestamps (when operations happened)

    Example:
        project.set_change_reason("Cancelled due to track change")
        project.save()
        # AuditLog now holds the status diff and the reason
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField("Created At", db_index=True)
    updated_at = models.DateTimeField("Updated At", db_index=True)

    # CharField rather than FK so audit fields never block deletes
    created_by_id = models.CharField(
        "Created By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who created this record"
    )
    updated_by_id = models.CharField(
        "Updated By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who last updated this record"
    )

    created_from_ip = models.GenericIPAddressField("Created From IP", null=True, blank=True)
    updated_from_ip = models.GenericIPAddressField("Updated From IP", null=True, blank=True)

    change_reason = models.CharField(
        "Change Reason",
        max_length=255,
        blank=True,
        null=True,
        help_text="Explanation for why this change was made"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Override save to:
        1. Set timestamps from the institute clock
        2. Populate audit trail fields (created_by, updated_by, IPs)
        3. Track field changes
        4. Create audit log entry
        """
        from utils.context import get_request_context
        from core.utils import get_current_time

        is_new = self._state.adding

        # =========================================================================
        # STEP 1: TIMESTAMPS
        # =========================================================================
        now = get_current_time()
        if is_new:
            # Respect a manually provided created_at (imports, fixtures)
            if not self.created_at:
                self.created_at = now
            if not self.updated_at:
                self.updated_at = now
        else:
            self.updated_at = now

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'updated_at', 'updated_by_id', 'updated_from_ip'}

        # =========================================================================
        # STEP 2: AUDIT FIELDS FROM REQUEST CONTEXT
        # =========================================================================
        context = get_request_context()

        if context:
            user = context.get('user')
            ip_address = context.get('ip_address')

            if is_new:
                if user and not self.created_by_id:
                    self.created_by_id = str(user.pk)
                if ip_address and not self.created_from_ip:
                    self.created_from_ip = ip_address

            if user:
                self.updated_by_id = str(user.pk)
            if ip_address:
                self.updated_from_ip = ip_address

        # =========================================================================
        # STEP 3: TRACK CHANGES FOR EXISTING OBJECTS
        # =========================================================================
        changes = {}
        if not is_new and self.pk:
            changes = self._collect_changes()

        result = super().save(*args, **kwargs)

        # =========================================================================
        # STEP 4: AUDIT LOG ENTRY
        # =========================================================================
        if not is_new and not changes:
            return result

        self._create_audit_log(
            action='CREATE' if is_new else 'UPDATE',
            changes=changes
        )
        return result

    def delete(self, *args, **kwargs):
        self._create_audit_log(action='DELETE', changes={})
        return super().delete(*args, **kwargs)

    # -------------------------------------------------------------------------
    # AUDIT TRAIL HELPER METHODS
    # -------------------------------------------------------------------------

    def _collect_changes(self):
        """Diff the in-memory instance against the stored row"""
        changes = {}
        try:
            old_instance = self.__class__._base_manager.get(pk=self.pk)
        except self.__class__.DoesNotExist:
            logger.debug(f"Old instance not found for {self.__class__.__name__} {self.pk}")
            return changes

        for field in self._meta.concrete_fields:
            if field.name in AUDIT_SKIPPED_FIELDS:
                continue
            old_value = getattr(old_instance, field.attname)
            new_value = getattr(self, field.attname)
            if old_value != new_value:
                changes[field.name] = {
                    'old': str(old_value) if old_value is not None else None,
                    'new': str(new_value) if new_value is not None else None
                }
        return changes

    def _create_audit_log(self, action, changes):
        """
        Create an audit log entry for this change.

        Runs in its own savepoint so a failing audit write never poisons the
        caller's transaction.
        """
        from utils.context import get_request_context

        context = get_request_context()

        user_id = None
        user_name = ""
        if context and context.get('user'):
            user = context['user']
            user_id = str(user.pk)
            user_name = getattr(user, 'get_full_name', lambda: str(user))() or str(user)

        try:
            with transaction.atomic():
                AuditLog.objects.create(
                    content_type=f"{self._meta.app_label}.{self._meta.model_name}",
                    object_id=str(self.pk),
                    object_repr=str(self)[:200],
                    action=action,
                    changes=changes,
                    user_id=user_id,
                    user_name=user_name,
                    ip_address=context.get('ip_address') if context else None,
                    change_reason=self.change_reason or '',
                    request_path=context.get('request_path', '') if context else '',
                )
        except Exception as e:
            logger.error(f"Failed to create audit log: {e}", exc_info=True)

    def set_change_reason(self, reason):
        """
        Set the reason for the next change to this object.

        Usage:
            selection.set_change_reason("Track changed by admin")
            selection.save()
        """
        self.change_reason = (reason or '')[:255]


# =============================================================================
# AUDIT LOG MODEL
# =============================================================================

class AuditLog(models.Model):
    """
    Audit trail for model changes and track transitions.

    Tracks:
    - What changed (model, object_id, field changes)
    - Who made the change (user)
    - When it happened
    - Where it came from (IP address)
    - Why it was changed (reason)
    """

    ACTION_CHOICES = (
        ('CREATE', 'Created'),
        ('UPDATE', 'Updated'),
        ('DELETE', 'Deleted'),
        ('TRACK_CHANGE', 'Track Changed'),
        ('PROJECT_CANCEL', 'Project Cancelled'),
        ('APPLICATION_REVIEW', 'Application Reviewed'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    content_type = models.CharField("Model Type", max_length=100, db_index=True)
    object_id = models.CharField("Object ID", max_length=100, db_index=True)
    object_repr = models.CharField("Object Representation", max_length=200)
    action = models.CharField("Action", max_length=20, choices=ACTION_CHOICES, db_index=True)

    changes = models.JSONField(
        "Changes",
        help_text="Dictionary of field changes: {'field_name': {'old': 'value', 'new': 'value'}}",
        default=dict,
        blank=True
    )

    user_id = models.CharField("User ID", max_length=50, db_index=True, null=True, blank=True)
    user_name = models.CharField("User Name", max_length=255, blank=True)

    timestamp = models.DateTimeField("Timestamp", db_index=True)

    ip_address = models.GenericIPAddressField("IP Address", null=True, blank=True)
    change_reason = models.CharField("Change Reason", max_length=255, blank=True)
    request_path = models.CharField("Request Path", max_length=255, blank=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['content_type', 'object_id']),
            models.Index(fields=['user_id', 'timestamp']),
        ]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} {self.content_type} {self.object_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        from core.utils import get_current_time

        if not self.timestamp:
            self.timestamp = get_current_time()
        return super().save(*args, **kwargs)

    def get_changes_display(self):
        """Human-readable display of changes"""
        if not self.changes:
            return "No field changes recorded"

        lines = []
        for field, change in self.changes.items():
            if not isinstance(change, dict):
                lines.append(f"{field}: {change}")
                continue
            old_val = change.get('old', 'N/A')
            new_val = change.get('new', 'N/A')
            lines.append(f"{field}: '{old_val}' -> '{new_val}'")

        return "\n".join(lines)
