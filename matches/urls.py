from django.urls import path

from . import views

app_name = "matches"

urlpatterns = [
    path("matches/", views.MatchListView.as_view(), name="match_list"),
    path("matches/<int:pk>/confirm/", views.MatchConfirmView.as_view(), name="match_confirm"),
    path("matches/<int:pk>/reschedule/", views.MatchRescheduleView.as_view(), name="match_reschedule"),
    path("matches/<int:pk>/result/", views.MatchResultView.as_view(), name="match_result"),
    path("matches/<int:pk>/schedule/", views.MatchScheduleView.as_view(), name="match_schedule"),
    path("matches/<int:pk>/cancel/", views.MatchCancelView.as_view(), name="match_cancel"),
]
