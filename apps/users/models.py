from django.contrib.auth.models import AbstractUser
from django.db import models
import uuid


class User(AbstractUser):
    """Custom User model. ``is_staff`` doubles as the coarse "elevated" flag."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, null=True, blank=True)
    display_name = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.username

    @property
    def name(self):
        return self.display_name or self.username


class RoleAssignment(models.Model):
    """Special roles. A user without any row is a plain student."""

    ADMIN = 'admin'
    TEACHER = 'teacher'

    ROLES = [
        (ADMIN, 'Admin'),
        (TEACHER, 'Teacher'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='role_assignments')
    role = models.CharField(max_length=20, choices=ROLES)
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'special_roles'
        verbose_name = 'Role Assignment'
        verbose_name_plural = 'Role Assignments'
        unique_together = ('user', 'role')
        ordering = ['granted_at']

    def __str__(self):
        return f"{self.user.username} - {self.role}"
