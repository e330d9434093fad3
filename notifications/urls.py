from django.urls import path

from . import views

app_name = "notifications"

urlpatterns = [
    path("send-email/", views.send_email_view, name="send_email"),
]
