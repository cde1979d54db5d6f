# core/models.py

"""
Core models for the track portal.

SystemConfig is the key/value store for runtime business settings: the
current academic year and the submission windows consulted by student-facing
endpoints.
"""

from django.db import models
from utils.models import BaseModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# SYSTEM CONFIGURATION MODEL
# =============================================================================

class SystemConfig(BaseModel):
    """Key/value configuration entry (scalars and small objects)"""

    CONFIG_TYPE_CHOICES = (
        ('string', 'String'),
        ('number', 'Number'),
        ('boolean', 'Boolean'),
        ('object', 'Object'),
        ('array', 'Array'),
    )

    CATEGORY_CHOICES = (
        ('general', 'General'),
        ('academic', 'Academic'),
        ('sem7', 'Semester 7'),
        ('sem8', 'Semester 8'),
        ('faculty', 'Faculty'),
        ('student', 'Student'),
    )

    config_key = models.CharField("Config Key", max_length=150, unique=True)
    config_value = models.JSONField("Config Value", null=True, blank=True)
    config_type = models.CharField("Config Type", max_length=10, choices=CONFIG_TYPE_CHOICES)
    description = models.CharField("Description", max_length=255, blank=True)
    category = models.CharField(
        "Category",
        max_length=20,
        choices=CATEGORY_CHOICES,
        default='general',
        db_index=True
    )
    is_active = models.BooleanField("Is Active", default=True)

    class Meta:
        verbose_name = "System Configuration"
        verbose_name_plural = "System Configurations"
        ordering = ['config_key']

    def __str__(self):
        return f"{self.config_key} = {self.config_value!r}"

    @classmethod
    def get_config_value(cls, key, default=None):
        """
        Get the value stored under ``key``.

        Returns ``default`` when the key is missing or inactive.
        """
        config = cls.objects.filter(config_key=key, is_active=True).first()
        return config.config_value if config else default

    @classmethod
    def set_config_value(cls, key, value, config_type, description='', category='general'):
        """Create or update a configuration entry"""
        config, created = cls.objects.update_or_create(
            config_key=key,
            defaults={
                'config_value': value,
                'config_type': config_type,
                'description': description or '',
                'category': category,
                'is_active': True,
            }
        )
        logger.info(f"{'Created' if created else 'Updated'} system config {key}")
        return config

    @classmethod
    def get_configs_by_category(cls, category):
        return cls.objects.filter(category=category, is_active=True).order_by('config_key')
