# ===== apps/users/health_urls.py =====
import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.urls import path
from django.utils import timezone

logger = logging.getLogger(__name__)


def health_check(request):
    """Health check endpoint"""
    try:
        # Check database connection
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        db_status = "connected"
    except DatabaseError as e:
        logger.error(f"Health check database error: {e}")
        db_status = "disconnected"

    return JsonResponse({
        'status': 'healthy' if db_status == "connected" else 'degraded',
        'timestamp': timezone.now().isoformat(),
        'version': '1.0.0',
        'database': db_status
    }, status=200 if db_status == "connected" else 503)


urlpatterns = [
    path('', health_check, name='health_check'),
]
