from django.urls import path
from . import views

urlpatterns = [
    path('assets', views.search_assets, name='search_assets'),
    path('assets/<int:asset_id>/price', views.get_price, name='asset_price'),
]
