from django.contrib import admin

from .models import Team, TeamInvitation


class TeamInvitationInline(admin.TabularInline):
    model = TeamInvitation
    extra = 0
    fields = ("email", "status", "invited_by", "created_at")
    readonly_fields = ("created_at",)


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ("name", "player1", "player2", "created_by", "created_at")
    search_fields = ("name", "player1__email", "player2__email")
    inlines = [TeamInvitationInline]


@admin.register(TeamInvitation)
class TeamInvitationAdmin(admin.ModelAdmin):
    list_display = ("email", "team", "status", "invited_by", "created_at")
    list_filter = ("status",)
    search_fields = ("email", "team__name")
