from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/users/', include('apps.users.urls')),
    path('api/market/', include('apps.market.urls')),
    path('api/depots/', include('apps.depots.urls')),
    path('api/savings/', include('apps.savings.urls')),
    path('api/analytics/', include('apps.analytics.urls')),
    path('health/', include('apps.users.health_urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

admin.site.site_header = "Depot Ledger Administration"
admin.site.site_title = "Depot Ledger Admin"
admin.site.index_title = "Depots, ledgers and savings plans"
