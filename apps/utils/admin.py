# utils/admin.py

from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = [
        'timestamp', 'action', 'content_type', 'object_repr',
        'user_name', 'ip_address'
    ]
    list_filter = ['action', 'timestamp', 'content_type']
    search_fields = ['object_repr', 'user_name', 'object_id', 'change_reason']
    readonly_fields = [
        'id', 'content_type', 'object_id', 'object_repr', 'action',
        'changes', 'user_id', 'user_name', 'timestamp',
        'ip_address', 'change_reason', 'request_path', 'changes_display'
    ]

    fieldsets = (
        ('What Changed', {
            'fields': ('content_type', 'object_id', 'object_repr', 'action', 'changes_display')
        }),
        ('Who Changed It', {
            'fields': ('user_id', 'user_name')
        }),
        ('When & Where', {
            'fields': ('timestamp', 'ip_address', 'request_path')
        }),
        ('Why', {
            'fields': ('change_reason',),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser

    @admin.display(description='Changes')
    def changes_display(self, obj):
        return obj.get_changes_display()
