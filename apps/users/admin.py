# ===== apps/users/admin.py =====
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import RoleAssignment, User


class RoleAssignmentInline(admin.TabularInline):
    model = RoleAssignment
    extra = 0
    readonly_fields = ['granted_at']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'display_name', 'is_staff', 'is_active', 'created_at']
    list_filter = ['is_staff', 'is_active', 'created_at']
    search_fields = ['username', 'email', 'display_name']
    ordering = ['-created_at']
    inlines = [RoleAssignmentInline]

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Additional Info', {'fields': ('display_name',)}),
    )


@admin.register(RoleAssignment)
class RoleAssignmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'granted_at']
    list_filter = ['role']
    search_fields = ['user__username']
    raw_id_fields = ['user']
