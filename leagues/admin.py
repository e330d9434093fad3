from django.contrib import admin

from .models import Division, League, LeagueRegistration


class DivisionInline(admin.TabularInline):
    model = Division
    extra = 0


@admin.register(League)
class LeagueAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "is_approved", "match_format", "start_date", "end_date", "created_by")
    list_filter = ("status", "is_approved", "match_format", "start_date")
    search_fields = ("name", "venue", "created_by__email")
    inlines = [DivisionInline]


@admin.register(LeagueRegistration)
class LeagueRegistrationAdmin(admin.ModelAdmin):
    list_display = ("team", "league", "division", "status", "points", "bonus_points",
                    "matches_played", "matches_won")
    list_filter = ("status", "league")
    search_fields = ("team__name", "league__name")
