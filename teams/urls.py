from django.urls import path

from . import views

app_name = "teams"

urlpatterns = [
    path("teams/", views.TeamListView.as_view(), name="team_list"),
    path("create-team/", views.TeamCreateView.as_view(), name="team_create"),
    path("manage-team/<int:pk>/", views.TeamManageView.as_view(), name="team_manage"),
    path("teams/invitations/<int:pk>/<str:action>/", views.InvitationRespondView.as_view(), name="invitation_respond"),
]
