# ===== apps/users/serializers.py =====
from rest_framework import serializers

from .models import RoleAssignment


class ProfileSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    username = serializers.CharField()
    email = serializers.EmailField(allow_null=True)
    name = serializers.CharField()
    is_staff = serializers.BooleanField()
    roles = serializers.ListField(child=serializers.CharField())
    depot_ids = serializers.ListField(child=serializers.IntegerField())


class RoleAssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoleAssignment
        fields = ['user', 'role', 'granted_at']


class RoleGrantSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=RoleAssignment.ROLES)


class AdminOverviewRowSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    username = serializers.CharField()
    email = serializers.EmailField(allow_null=True)
    created_at = serializers.DateTimeField()
    is_active = serializers.BooleanField()
    roles = serializers.ListField(child=serializers.CharField())
    role_granted_at = serializers.ListField(child=serializers.DateTimeField())
    depot_count = serializers.IntegerField()
    position_count = serializers.IntegerField()
    transaction_count = serializers.IntegerField()


class UserStatsSerializer(serializers.Serializer):
    user_count = serializers.IntegerField()
    teacher_count = serializers.IntegerField()
    admin_count = serializers.IntegerField()
    student_count = serializers.IntegerField()
