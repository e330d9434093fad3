# leagues/views.py
from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied, ValidationError
from django.shortcuts import get_object_or_404, redirect, render
from django.views import View
from django.views.generic import FormView, ListView, TemplateView

from accounts.permissions import LeagueCreatorRequiredMixin, can_manage_league
from matches.models import Match
from teams.models import Team
from teams.services import teams_for_user

from .forms import DivisionForm, JoinLeagueForm, LeagueCreateForm, LeagueForm
from .models import Division, League, LeagueRegistration
from . import services, standings as standings_service

logger = logging.getLogger(__name__)


def _error_text(exc) -> str:
    return " ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)


def _pk(value):
    """Integer primary key from a query or form value, or None."""
    value = (value or "").strip()
    return int(value) if value.isdigit() else None


class LeagueListView(LoginRequiredMixin, ListView):
    template_name = "leagues/league_list.html"
    context_object_name = "leagues"
    paginate_by = 20

    def get_queryset(self):
        return services.visible_leagues(self.request.user)

    def get_context_data(self, **kwargs):
        ctx = super().get_context_data(**kwargs)
        user = self.request.user
        ctx["my_teams"] = [t for t in teams_for_user(user) if t.is_complete]
        ctx["managed_ids"] = {lg.pk for lg in ctx["leagues"] if can_manage_league(user, lg)}
        return ctx


class LeagueCreateView(LeagueCreatorRequiredMixin, FormView):
    form_class = LeagueCreateForm
    template_name = "leagues/league_form.html"

    def form_valid(self, form):
        try:
            league = services.create_league(
                self.request.user, form.league_data(), form.cleaned_data["divisions"]
            )
        except ValidationError as e:
            form.add_error(None, _error_text(e))
            return self.form_invalid(form)
        if league.is_approved:
            messages.success(self.request, f"League “{league.name}” created.")
        else:
            messages.success(self.request, f"League “{league.name}” created. A super admin will review it.")
        return redirect("leagues:league_manage", pk=league.pk)


class LeagueManageView(LoginRequiredMixin, View):
    """League settings, registrations, fixtures, scheduling and results in one page."""
    template_name = "leagues/league_manage.html"

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()
        self.league = get_object_or_404(League, pk=kwargs["pk"])
        if not can_manage_league(request.user, self.league):
            messages.error(request, "Only the league creator or a super admin can manage this league.")
            return redirect("leagues:league_list")
        return super().dispatch(request, *args, **kwargs)

    def _render(self, request, form=None, division_form=None):
        league = self.league
        divisions = list(league.divisions.all())
        return render(
            request,
            self.template_name,
            {
                "league": league,
                "form": form or LeagueForm(instance=league),
                "division_form": division_form or DivisionForm(),
                "divisions": [(d, services.fixture_info(league, d)) for d in divisions],
                "registrations": league.registrations.select_related(
                    "team", "team__player1", "team__player2", "division"
                ).order_by("division__level", "status", "team__name"),
                "matches": Match.objects.filter(league=league)
                .select_related("division", "team1", "team2", "winner_team")
                .prefetch_related("sets")
                .order_by("division__level", "round_number", "match_number"),
                "registration_statuses": LeagueRegistration.Status.choices,
            },
        )

    def get(self, request, pk):
        return self._render(request)

    def post(self, request, pk):
        league = self.league
        user = request.user
        action = request.POST.get("action")
        try:
            if action == "update":
                form = LeagueForm(request.POST, instance=league)
                if not form.is_valid():
                    return self._render(request, form=form)
                services.update_league(league, form.cleaned_data, user)
                messages.success(request, "League updated.")
            elif action == "add_division":
                dform = DivisionForm(request.POST)
                if not dform.is_valid():
                    return self._render(request, division_form=dform)
                services.add_division(league, dform.cleaned_data["name"], dform.cleaned_data["max_teams"], user)
                messages.success(request, "Division added.")
            elif action == "registration":
                reg = self._registration(request)
                services.set_registration_status(reg, request.POST.get("status"), user)
                messages.success(request, f"{reg.team.name}: registration {reg.get_status_display().lower()}.")
            elif action == "withdraw":
                reg = self._registration(request)
                services.withdraw_registration(reg, user)
                messages.success(request, f"{reg.team.name} removed from the league.")
            elif action == "generate":
                division = self._division(request)
                created = services.generate_round_robin(league, user, division)
                if created:
                    messages.success(request, f"Generated {created} match(es).")
                else:
                    messages.info(request, "All fixtures already exist.")
            elif action == "clear":
                count = services.clear_fixtures(league, user, self._division(request))
                messages.success(request, f"Removed {count} unplayed match(es).")
            elif action == "recalculate":
                counted = standings_service.recalculate_standings(league)
                messages.success(request, f"Standings rebuilt from {counted} completed match(es).")
            elif action == "delete":
                services.delete_league(league, user)
                messages.success(request, "League deleted.")
                return redirect("leagues:league_list")
            else:
                messages.error(request, "Unknown action.")
        except (ValidationError, PermissionDenied) as e:
            messages.error(request, _error_text(e))
        return redirect("leagues:league_manage", pk=league.pk)

    def _registration(self, request):
        return get_object_or_404(
            LeagueRegistration.objects.select_related("team"),
            pk=_pk(request.POST.get("registration_id")),
            league=self.league,
        )

    def _division(self, request):
        raw = request.POST.get("division_id")
        if not raw:
            return None
        return get_object_or_404(Division, pk=_pk(raw), league=self.league)


class JoinLeagueView(LoginRequiredMixin, View):
    template_name = "leagues/join_league.html"

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()
        self.team = get_object_or_404(Team.objects.select_related("player1", "player2"), pk=kwargs["team_id"])
        if not self.team.has_player(request.user):
            messages.error(request, "You can only register teams you play in.")
            return redirect("teams:team_list")
        return super().dispatch(request, *args, **kwargs)

    def _open_leagues(self):
        return (
            League.objects.filter(is_approved=True, status__in=League.OPEN_STATUSES)
            .exclude(registrations__team=self.team)
        )

    def get(self, request, team_id):
        if not self.team.is_complete:
            messages.error(request, "Your team needs a second player before joining a league.")
            return redirect("teams:team_list")
        initial = {}
        if request.GET.get("division"):
            initial["division"] = request.GET.get("division")
        form = JoinLeagueForm(leagues=self._open_leagues(), initial=initial)
        return render(request, self.template_name, {"form": form, "team": self.team})

    def post(self, request, team_id):
        form = JoinLeagueForm(request.POST, leagues=self._open_leagues())
        if not form.is_valid():
            # A league the team already joined is filtered out of the choices
            division_id = _pk(request.POST.get("division"))
            if division_id and LeagueRegistration.objects.filter(
                team=self.team, league__divisions__pk=division_id
            ).exists():
                messages.error(request, "Your team is already registered for this league")
            return render(request, self.template_name, {"form": form, "team": self.team})

        division = form.cleaned_data["division"]
        try:
            services.register_team(self.team, division.league, division, request.user)
        except (ValidationError, PermissionDenied) as e:
            form.add_error(None, _error_text(e))
            return render(request, self.template_name, {"form": form, "team": self.team})
        messages.success(
            request,
            f"{self.team.name} registered for {division.league.name}. The league admin will approve your entry.",
        )
        return redirect("teams:team_list")


class StandingsView(LoginRequiredMixin, TemplateView):
    template_name = "leagues/standings.html"

    def get_context_data(self, **kwargs):
        ctx = super().get_context_data(**kwargs)
        leagues = list(services.visible_leagues(self.request.user))
        league = None
        league_id = self.request.GET.get("league")
        if league_id:
            league = next((lg for lg in leagues if str(lg.pk) == league_id), None)
        if league is None and leagues:
            league = leagues[0]

        division = None
        division_id = _pk(self.request.GET.get("division"))
        if league is not None and division_id:
            division = league.divisions.filter(pk=division_id).first()

        ctx.update({
            "leagues": leagues,
            "league": league,
            "division": division,
            "rows": standings_service.leaderboard_rows(league, division) if league else [],
        })
        return ctx
