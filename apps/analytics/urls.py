# ===== apps/analytics/urls.py =====
from django.urls import path
from . import views

urlpatterns = [
    path('depots/<int:depot_id>/values', views.get_value_series, name='depot_values'),
    path('depots/<int:depot_id>/aggregate', views.get_aggregate, name='depot_aggregate'),
]
