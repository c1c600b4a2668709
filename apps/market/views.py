import logging

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.depots.exceptions import InvalidInput, NotFound
from .models import Asset
from .prices import price_source
from .serializers import AssetSerializer

logger = logging.getLogger(__name__)


# ======================================================
# ASSET SEARCH
# ======================================================
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def search_assets(request):
    """
    GET /api/market/assets?q=APP
    """
    q = request.query_params.get("q", "").strip()
    try:
        limit = min(int(request.query_params.get("limit", 20)), 100)
    except ValueError:
        raise InvalidInput("limit must be an integer") from None

    assets = Asset.objects.all()
    if q:
        assets = assets.filter(Q(symbol__icontains=q) | Q(name__icontains=q))

    return Response(AssetSerializer(assets[:limit], many=True).data)


# ======================================================
# LAST KNOWN PRICE
# ======================================================
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def get_price(request, asset_id):
    asset = Asset.objects.filter(pk=asset_id).first()
    if asset is None:
        raise NotFound("Asset not found")

    price = price_source.latest_price(asset.pk)
    return Response({
        "asset_id": asset.pk,
        "symbol": asset.symbol,
        "price": price,
    })
