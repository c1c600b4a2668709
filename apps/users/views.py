# ===== apps/users/views.py =====
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from . import services
from .roles import caller_for
from .serializers import (
    AdminOverviewRowSerializer, ProfileSerializer, RoleAssignmentSerializer,
    RoleGrantSerializer, UserStatsSerializer
)

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """Profile of the caller with resolved roles"""
    return Response(ProfileSerializer(services.profile(caller_for(request))).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def admin_overview(request):
    """All users with role grants and depot counts (admin/teacher)"""
    rows = services.admin_overview(caller_for(request))
    return Response(AdminOverviewRowSerializer(rows, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stats(request):
    return Response(UserStatsSerializer(services.user_stats(caller_for(request))).data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def teacher(request, user_id):
    """Grant or revoke the teacher role"""
    caller = caller_for(request)

    if request.method == 'POST':
        assignment = services.grant_teacher(caller, user_id)
        return Response(RoleAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    services.revoke_teacher(caller, user_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def grant_role(request, user_id):
    serializer = RoleGrantSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    assignment = services.grant_role(caller_for(request), user_id, serializer.validated_data['role'])
    return Response(RoleAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def revoke_role(request, user_id, role):
    services.revoke_role(caller_for(request), user_id, role)
    return Response(status=status.HTTP_204_NO_CONTENT)
