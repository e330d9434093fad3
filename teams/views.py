from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError
from django.shortcuts import get_object_or_404, redirect, render
from django.views import View
from django.views.generic import FormView, TemplateView

from accounts.permissions import can_manage_team
from leagues.services import withdraw_registration
from matches.services import pending_confirmations_for

from .forms import AddPlayerForm, TeamCreateForm, TeamRenameForm
from .models import Team, TeamInvitation
from . import services

logger = logging.getLogger(__name__)


def _error_text(exc: ValidationError) -> str:
    return " ".join(exc.messages)


def _pk(value):
    value = (value or "").strip()
    return int(value) if value.isdigit() else None


class TeamListView(LoginRequiredMixin, TemplateView):
    template_name = "teams/team_list.html"

    def get_context_data(self, **kwargs):
        ctx = super().get_context_data(**kwargs)
        user = self.request.user
        ctx["teams"] = services.teams_for_user(user).prefetch_related("registrations__league")
        ctx["pending_invites"] = services.pending_invitations_for(user)
        ctx["pending_confirmations"] = pending_confirmations_for(user)
        return ctx


class TeamCreateView(LoginRequiredMixin, FormView):
    form_class = TeamCreateForm
    template_name = "teams/team_form.html"

    def form_valid(self, form):
        try:
            result = services.create_team(
                self.request.user, form.cleaned_data["name"], form.cleaned_data["teammate_email"]
            )
        except ValidationError as e:
            form.add_error(None, _error_text(e))
            return self.form_invalid(form)

        team = result.team
        if result.invitation is not None:
            messages.success(
                self.request,
                f"Team “{team.name}” created. We invited {result.invitation.email} to join.",
            )
        else:
            messages.success(self.request, f"Team “{team.name}” created with {team.player2.display_name}.")
        if not result.email_sent:
            messages.warning(self.request, "Team created, but the notification email could not be sent.")
        return redirect("teams:team_list")


class InvitationRespondView(LoginRequiredMixin, View):
    def post(self, request, pk, action):
        invitation = get_object_or_404(TeamInvitation, pk=pk)
        if action not in {"accept", "decline"}:
            messages.error(request, "Unknown action.")
            return redirect("teams:team_list")
        try:
            services.respond_to_invitation(invitation, request.user, accept=(action == "accept"))
        except (ValidationError, PermissionDenied) as e:
            text = _error_text(e) if isinstance(e, ValidationError) else str(e)
            messages.error(request, text)
        else:
            if action == "accept":
                messages.success(request, f"You have joined {invitation.team.name}.")
            else:
                messages.info(request, "Invitation declined.")
        return redirect("teams:team_list")


class TeamManageView(LoginRequiredMixin, View):
    """Rename, add or remove the second player, delete."""
    template_name = "teams/team_manage.html"

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()
        self.team = get_object_or_404(Team.objects.select_related("player1", "player2"), pk=kwargs["pk"])
        if not can_manage_team(request.user, self.team):
            messages.error(request, "Only the team creator can manage this team.")
            return redirect("teams:team_list")
        return super().dispatch(request, *args, **kwargs)

    def _render(self, request, rename_form=None, add_form=None):
        team = self.team
        return render(
            request,
            self.template_name,
            {
                "team": team,
                "rename_form": rename_form or TeamRenameForm(initial={"name": team.name}),
                "add_form": add_form or AddPlayerForm(),
                "registrations": team.registrations.select_related("league", "division"),
                "pending_invites": team.invitations.filter(status=TeamInvitation.Status.PENDING),
            },
        )

    def get(self, request, pk):
        return self._render(request)

    def post(self, request, pk):
        action = request.POST.get("action")
        team = self.team
        try:
            if action == "rename":
                form = TeamRenameForm(request.POST)
                if not form.is_valid():
                    return self._render(request, rename_form=form)
                services.rename_team(team, form.cleaned_data["name"], request.user)
                messages.success(request, "Team name updated.")
            elif action == "add_player":
                form = AddPlayerForm(request.POST)
                if not form.is_valid():
                    return self._render(request, add_form=form)
                services.add_player(team, form.cleaned_data["email"], request.user)
                messages.success(request, "Player added to the team.")
            elif action == "remove_player":
                services.remove_player2(team, request.user)
                messages.success(request, "Player removed from the team.")
            elif action == "leave_league":
                reg = get_object_or_404(
                    team.registrations.select_related("league"), pk=_pk(request.POST.get("registration_id"))
                )
                withdraw_registration(reg, request.user)
                messages.success(request, f"{team.name} left {reg.league.name}.")
            elif action == "delete":
                services.delete_team(team, request.user)
                messages.success(request, "Team deleted.")
                return redirect("teams:team_list")
            else:
                messages.error(request, "Unknown action.")
        except ValidationError as e:
            messages.error(request, _error_text(e))
        except PermissionDenied as e:
            messages.error(request, str(e))
        except DatabaseError:
            logger.exception("Team %s update failed", team.pk)
            messages.error(request, "Failed to update team. Please try again.")
        return redirect("teams:team_manage", pk=team.pk)
