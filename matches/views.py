# matches/views.py
from __future__ import annotations

import logging

from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied, ValidationError
from django.shortcuts import get_object_or_404, redirect, render
from django.utils.decorators import method_decorator
from django.utils.http import url_has_allowed_host_and_scheme
from django.views import View
from django.views.decorators.http import require_POST
from django.views.generic import TemplateView

from accounts.permissions import can_manage_league

from .forms import RescheduleForm, ResultForm, ScheduleForm
from .models import Match
from . import services

logger = logging.getLogger(__name__)


def _error_text(exc) -> str:
    return " ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)


def user_team_in(match: Match, user):
    """The user's side in this match, or None."""
    for team in (match.team1, match.team2):
        if team.has_player(user):
            return team
    return None


def _back(request, match: Match):
    next_url = request.POST.get("next")
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return redirect(next_url)
    return redirect("matches:match_list")


class MatchListView(LoginRequiredMixin, TemplateView):
    template_name = "matches/match_list.html"

    def get_context_data(self, **kwargs):
        ctx = super().get_context_data(**kwargs)
        user = self.request.user
        upcoming, past = services.matches_for_user(user)
        rows = []
        for m in upcoming:
            rows.append({
                "match": m,
                "my_team": user_team_in(m, user),
                "status": services.get_match_confirmations_status(m),
            })
        ctx["upcoming"] = rows
        ctx["past"] = past
        ctx["reschedule_form"] = RescheduleForm()
        ctx["max_rounds"] = services.max_reschedule_rounds()
        return ctx


@method_decorator(require_POST, name="dispatch")
class MatchConfirmView(LoginRequiredMixin, View):
    def post(self, request, pk):
        match = get_object_or_404(Match.objects.select_related("team1", "team2"), pk=pk)
        team = user_team_in(match, request.user)
        if team is None:
            messages.error(request, "You do not play in this match.")
            return _back(request, match)
        try:
            match = services.confirm_match_for_team(match, team, request.user)
        except (ValidationError, PermissionDenied) as e:
            messages.error(request, _error_text(e))
        else:
            if match.status == Match.Status.CONFIRMED:
                messages.success(request, "Match confirmed by both teams.")
            else:
                messages.success(request, "Confirmation saved. Waiting for the other team.")
        return _back(request, match)


@method_decorator(require_POST, name="dispatch")
class MatchRescheduleView(LoginRequiredMixin, View):
    """action=propose|counter|accept"""

    def post(self, request, pk):
        match = get_object_or_404(Match.objects.select_related("team1", "team2"), pk=pk)
        team = user_team_in(match, request.user)
        if team is None:
            messages.error(request, "You do not play in this match.")
            return _back(request, match)

        action = request.POST.get("action")
        try:
            if action == "accept":
                services.accept_reschedule(match, team, request.user)
                messages.success(request, "New time accepted. The match is confirmed.")
            elif action in {"propose", "counter"}:
                form = RescheduleForm(request.POST)
                if not form.is_valid():
                    messages.error(request, "Please choose a valid date and time.")
                    return _back(request, match)
                args = (
                    match, team,
                    form.cleaned_data["proposed_date"],
                    form.cleaned_data["proposed_time"],
                    form.cleaned_data["message"],
                    request.user,
                )
                if action == "propose":
                    services.propose_reschedule(*args)
                else:
                    services.counter_propose_reschedule(*args)
                messages.success(request, "Proposal sent to the other team.")
            else:
                messages.error(request, "Unknown action.")
        except (ValidationError, PermissionDenied) as e:
            messages.error(request, _error_text(e))
        return _back(request, match)


class MatchResultView(LoginRequiredMixin, View):
    template_name = "matches/result_form.html"

    def dispatch(self, request, *args, **kwargs):
        self.match = get_object_or_404(
            Match.objects.select_related("league", "team1", "team2"), pk=kwargs["pk"]
        )
        return super().dispatch(request, *args, **kwargs)

    def _allowed(self, user) -> bool:
        m = self.match
        return can_manage_league(user, m.league) or (
            m.status == Match.Status.CONFIRMED and m.has_player(user)
        )

    def get(self, request, pk):
        if not self._allowed(request.user):
            messages.error(request, "You are not allowed to record this result.")
            return redirect("matches:match_list")
        form = ResultForm(match_format=self.match.league.match_format)
        return render(request, self.template_name, {"form": form, "match": self.match})

    def post(self, request, pk):
        form = ResultForm(request.POST, match_format=self.match.league.match_format)
        if form.is_valid():
            try:
                services.record_result(self.match, form.cleaned_data["sets"], request.user)
            except PermissionDenied as e:
                messages.error(request, str(e))
                return redirect("matches:match_list")
            except ValidationError as e:
                form.add_error(None, _error_text(e))
            else:
                messages.success(request, "Result saved. Standings updated.")
                if can_manage_league(request.user, self.match.league):
                    return redirect("leagues:league_manage", pk=self.match.league_id)
                return redirect("matches:match_list")
        return render(request, self.template_name, {"form": form, "match": self.match})


class MatchScheduleView(LoginRequiredMixin, View):
    template_name = "matches/schedule_form.html"

    def dispatch(self, request, *args, **kwargs):
        self.match = get_object_or_404(
            Match.objects.select_related("league", "team1", "team2"), pk=kwargs["pk"]
        )
        return super().dispatch(request, *args, **kwargs)

    def get(self, request, pk):
        m = self.match
        if not can_manage_league(request.user, m.league):
            messages.error(request, "Only the league admin can do this.")
            return redirect("matches:match_list")
        form = ScheduleForm(initial={
            "scheduled_date": m.scheduled_date,
            "scheduled_time": m.scheduled_time,
            "venue": m.venue or m.league.venue,
        })
        return render(request, self.template_name, {"form": form, "match": m})

    def post(self, request, pk):
        form = ScheduleForm(request.POST)
        if form.is_valid():
            cd = form.cleaned_data
            try:
                services.schedule_match(
                    self.match, cd["scheduled_date"], cd["scheduled_time"], cd["venue"], request.user
                )
            except (ValidationError, PermissionDenied) as e:
                messages.error(request, _error_text(e))
            else:
                messages.success(request, "Match scheduled. Both teams need to confirm.")
            return redirect("leagues:league_manage", pk=self.match.league_id)
        return render(request, self.template_name, {"form": form, "match": self.match})


@method_decorator(require_POST, name="dispatch")
class MatchCancelView(LoginRequiredMixin, View):
    def post(self, request, pk):
        match = get_object_or_404(Match, pk=pk)
        try:
            services.cancel_match(match, request.user)
        except (ValidationError, PermissionDenied) as e:
            messages.error(request, _error_text(e))
        else:
            messages.success(request, "Match cancelled.")
        return redirect("leagues:league_manage", pk=match.league_id)
