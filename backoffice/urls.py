from django.urls import path
from . import views

app_name = "backoffice"

urlpatterns = [
    path("", views.dashboard, name="dashboard"),
    path("users/", views.users_list, name="users_list"),
    path("users/<int:user_id>/role/", views.change_role, name="change_role"),
    path("league-admins/<int:user_id>/<str:action>/", views.review_league_admin, name="review_league_admin"),
    path("leagues/<int:pk>/<str:action>/", views.review_league, name="review_league"),
    path("leagues/bulk/", views.bulk_leagues, name="bulk_leagues"),
]
