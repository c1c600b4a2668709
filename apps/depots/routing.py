from django.urls import re_path
from .consumers import DepotConsumer

websocket_urlpatterns = [
    re_path(r"^ws/depots/(?P<depot_id>\d+)/$", DepotConsumer.as_asgi()),
]
