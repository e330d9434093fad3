from django.contrib import admin

from .models import Match, MatchConfirmation, MatchSet


class MatchSetInline(admin.TabularInline):
    model = MatchSet
    extra = 0


class MatchConfirmationInline(admin.TabularInline):
    model = MatchConfirmation
    extra = 0


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ("league", "division", "round_number", "match_number", "team1", "team2",
                    "scheduled_date", "status", "winner_team")
    list_filter = ("status", "league", "division")
    search_fields = ("league__name", "team1__name", "team2__name")
    inlines = [MatchSetInline, MatchConfirmationInline]
