from django.urls import path
from . import views

urlpatterns = [
    path('me', views.me, name='me'),
    path('admin-overview', views.admin_overview, name='admin_overview'),
    path('stats', views.stats, name='user_stats'),

    # Roles
    path('<uuid:user_id>/teacher', views.teacher, name='user_teacher'),
    path('<uuid:user_id>/roles', views.grant_role, name='grant_role'),
    path('<uuid:user_id>/roles/<str:role>', views.revoke_role, name='revoke_role'),
]
