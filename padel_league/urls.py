from django.contrib import admin as dj_admin
from django.urls import path, include
from django.views.generic import TemplateView
from django.conf.urls.static import static
from django.conf import settings

urlpatterns = [
    # Django's own admin stays reachable at /dj-admin/; /admin/ is the super-admin panel.
    path("dj-admin/", dj_admin.site.urls),
    path("", TemplateView.as_view(template_name="home.html"), name="home"),
    path("accounts/", include("accounts.urls")),
    path("admin/", include("backoffice.urls", namespace="backoffice")),
    path("", include("teams.urls")),
    path("", include("leagues.urls")),
    path("", include("matches.urls")),
    path("notifications/", include("notifications.urls")),
]

if settings.DEBUG:
    # This must match MEDIA_URL exactly (leading/trailing slashes matter)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
