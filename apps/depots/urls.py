from django.urls import path
from . import views

urlpatterns = [
    path('', views.depots, name='depots'),
    path('<int:depot_id>', views.depot_detail, name='depot_detail'),
    path('<int:depot_id>/positions', views.get_positions, name='depot_positions'),
    path('<int:depot_id>/transactions', views.transactions, name='depot_transactions'),
    path('<int:depot_id>/reward', views.grant_reward, name='grant_reward'),
    path('<int:depot_id>/adjust-cash', views.adjust_cash, name='adjust_cash'),
    path('transactions/<int:transaction_id>/reverse', views.reverse_transaction, name='reverse_transaction'),
]
