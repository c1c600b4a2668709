# ===== apps/depots/views.py =====

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

import logging

from apps.analytics.overview import depot_overview
from apps.users.roles import caller_for
from . import services
from .serializers import (
    CashAmountSerializer,
    DepotCreateSerializer,
    DepotSerializer,
    PositionSerializer,
    TimeRangeSerializer,
    TradeSerializer,
    TransactionSerializer,
)

logger = logging.getLogger(__name__)


# ============================================================
# DEPOTS
# ============================================================

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def depots(request):
    caller = caller_for(request)

    if request.method == "GET":
        return Response(depot_overview(caller))

    serializer = DepotCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    depot = services.create_depot(caller, **serializer.validated_data)
    return Response(DepotSerializer(depot).data, status=status.HTTP_201_CREATED)


@api_view(["GET", "DELETE"])
@permission_classes([IsAuthenticated])
def depot_detail(request, depot_id):
    caller = caller_for(request)

    if request.method == "GET":
        return Response(DepotSerializer(services.get_depot(caller, depot_id)).data)

    services.delete_depot(caller, depot_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================
# POSITIONS
# ============================================================

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_positions(request, depot_id):
    rows = services.get_positions(caller_for(request), depot_id)
    return Response(PositionSerializer(rows, many=True).data)


# ============================================================
# TRANSACTIONS
# ============================================================

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def transactions(request, depot_id):
    caller = caller_for(request)

    if request.method == "GET":
        time_range = TimeRangeSerializer(data=request.query_params)
        if not time_range.is_valid():
            return Response(time_range.errors, status=status.HTTP_400_BAD_REQUEST)

        entries = services.list_transactions(caller, depot_id, **time_range.validated_data)
        return Response(TransactionSerializer(entries, many=True).data)

    serializer = TradeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry = services.create_transaction(caller, depot_id, **serializer.validated_data)
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def grant_reward(request, depot_id):
    serializer = CashAmountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry = services.grant_reward(caller_for(request), depot_id, serializer.validated_data["amount"])
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def adjust_cash(request, depot_id):
    serializer = CashAmountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry = services.adjust_cash(caller_for(request), depot_id, serializer.validated_data["amount"])
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def reverse_transaction(request, transaction_id):
    entry = services.reverse_transaction(caller_for(request), transaction_id)
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
