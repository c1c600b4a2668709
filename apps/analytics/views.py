# ===== apps/analytics/views.py =====
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from apps.depots.serializers import TimeRangeSerializer
from apps.users.roles import caller_for
from . import valuation
from .serializers import AggregateSerializer, DepotValuePointSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_value_series(request, depot_id):
    """Daily depot values for the chart"""
    time_range = TimeRangeSerializer(data=request.query_params)
    if not time_range.is_valid():
        return Response(time_range.errors, status=status.HTTP_400_BAD_REQUEST)

    points = valuation.value_series(caller_for(request), depot_id, **time_range.validated_data)
    return Response(DepotValuePointSerializer(points, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_aggregate(request, depot_id):
    """Current total with 1d / 1m / 1y changes"""
    result = valuation.aggregate_deltas(caller_for(request), depot_id)
    return Response(AggregateSerializer(result).data)
