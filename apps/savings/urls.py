from django.urls import path
from . import views

urlpatterns = [
    path('depots/<int:depot_id>/plans', views.plans, name='savings_plans'),
    path('depots/<int:depot_id>/executions', views.executions, name='savings_plan_executions'),
    path('depots/<int:depot_id>/budget', views.budget, name='savings_budget'),
    path('plans/delete', views.delete_plans, name='delete_savings_plans'),
    path('plans/<int:plan_id>', views.update_plan, name='update_savings_plan'),
]
