from django.apps import AppConfig


class LeaguesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "leagues"

    def ready(self):
        # Hooks the standings cache onto result_recorded
        from . import standings  # noqa: F401
