from django.urls import path

from . import views

app_name = "leagues"

urlpatterns = [
    path("leagues/", views.LeagueListView.as_view(), name="league_list"),
    path("create-league/", views.LeagueCreateView.as_view(), name="league_create"),
    path("manage-league/<int:pk>/", views.LeagueManageView.as_view(), name="league_manage"),
    path("join-league/<int:team_id>/", views.JoinLeagueView.as_view(), name="join_league"),
    path("standings/", views.StandingsView.as_view(), name="standings"),
]
