# ===== apps/savings/views.py =====

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

import logging

from apps.users.roles import caller_for
from . import services
from .serializers import (
    BudgetChangeSerializer,
    BudgetOverviewSerializer,
    ExecutionFilterSerializer,
    SavingsPlanCreateSerializer,
    SavingsPlanDeleteSerializer,
    SavingsPlanExecutionSerializer,
    SavingsPlanSerializer,
    SavingsPlanUpdateSerializer,
)

logger = logging.getLogger(__name__)


# ============================================================
# PLANS
# ============================================================

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def plans(request, depot_id):
    caller = caller_for(request)

    if request.method == "GET":
        return Response(SavingsPlanSerializer(services.list_savings_plans(caller, depot_id), many=True).data)

    serializer = SavingsPlanCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    plan = services.create_savings_plan(caller, depot_id, **serializer.validated_data)
    return Response(SavingsPlanSerializer(plan).data, status=status.HTTP_201_CREATED)


@api_view(["PATCH"])
@permission_classes([IsAuthenticated])
def update_plan(request, plan_id):
    serializer = SavingsPlanUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    plan = services.update_savings_plan(caller_for(request), plan_id, **serializer.validated_data)
    return Response(SavingsPlanSerializer(plan).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def delete_plans(request):
    serializer = SavingsPlanDeleteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    services.delete_savings_plans(caller_for(request), serializer.validated_data["ids"])
    return Response({"deleted": serializer.validated_data["ids"]})


# ============================================================
# EXECUTIONS
# ============================================================

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def executions(request, depot_id):
    filters = ExecutionFilterSerializer(data=request.query_params)
    if not filters.is_valid():
        return Response(filters.errors, status=status.HTTP_400_BAD_REQUEST)

    rows = services.list_executions(caller_for(request), depot_id, **filters.validated_data)
    return Response(SavingsPlanExecutionSerializer(rows, many=True).data)


# ============================================================
# BUDGET
# ============================================================

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def budget(request, depot_id):
    caller = caller_for(request)

    if request.method == "POST":
        serializer = BudgetChangeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        services.change_budget(caller, depot_id, serializer.validated_data["monthly_budget"])

    return Response(BudgetOverviewSerializer(services.budget_overview(caller, depot_id)).data)
