# matches/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounts.permissions import can_manage_league
from leagues.models import LeagueRegistration
from leagues.standings import apply_result

from .models import Match, MatchConfirmation, MatchSet
from .scoring import SetScore, score_string, validate_match
from .signals import result_recorded

logger = logging.getLogger(__name__)

OPEN = MatchConfirmation.Status.RESCHEDULE_PROPOSED


def max_reschedule_rounds() -> int:
    return getattr(settings, "PADEL_MAX_RESCHEDULE_ROUNDS", 3)


@dataclass
class TeamConfirmation:
    team_id: int
    team_name: str
    status: str
    round: int
    status_label: str = ""
    proposed_date: object = None
    proposed_time: object = None
    message: str = ""


@dataclass
class ConfirmationStatus:
    match_id: int
    teams: Dict[int, TeamConfirmation] = field(default_factory=dict)
    open_proposal: Optional[TeamConfirmation] = None
    current_round: int = 0
    both_confirmed: bool = False


# ---------------- helpers ----------------
def _lock_match(match: Match) -> Match:
    return Match.objects.select_for_update().select_related("team1", "team2", "league").get(pk=match.pk)


def _confirmation_pair(match: Match) -> Tuple[MatchConfirmation, MatchConfirmation]:
    """Both teams' rows, created on first use and locked for the caller's transaction."""
    for team_id in (match.team1_id, match.team2_id):
        MatchConfirmation.objects.get_or_create(match=match, team_id=team_id)
    rows = {
        c.team_id: c
        for c in MatchConfirmation.objects.select_for_update().filter(match=match)
    }
    return rows[match.team1_id], rows[match.team2_id]


def _own_and_opponent(match: Match, team) -> Tuple[MatchConfirmation, MatchConfirmation]:
    c1, c2 = _confirmation_pair(match)
    return (c1, c2) if team.pk == match.team1_id else (c2, c1)


def _require_player(match: Match, team, user) -> None:
    if not match.involves(team):
        raise ValidationError("That team does not play in this match.")
    if not team.has_player(user):
        raise PermissionDenied("You do not play for this team.")


def _require_open(match: Match) -> None:
    if match.is_finished:
        raise ValidationError("This match is already finished.")


def _require_manager(match: Match, user) -> None:
    if not can_manage_league(user, match.league):
        raise PermissionDenied("Only the league admin can do this.")


def _sync_match_status(match: Match, own: MatchConfirmation, other: MatchConfirmation) -> None:
    confirmed = MatchConfirmation.Status.CONFIRMED
    new_status = Match.Status.CONFIRMED if own.status == other.status == confirmed else Match.Status.PENDING
    if match.status != new_status:
        match.status = new_status
        match.save(update_fields=["status", "updated_at"])


def _clear_proposal(c: MatchConfirmation) -> None:
    c.proposed_date = None
    c.proposed_time = None
    c.message = ""


# ---------------- scheduling & confirmations ----------------
@transaction.atomic
def schedule_match(match: Match, date, time, venue: str, user) -> Match:
    match = _lock_match(match)
    _require_manager(match, user)
    _require_open(match)

    match.scheduled_date = date
    match.scheduled_time = time
    match.venue = venue or match.league.venue
    match.status = Match.Status.PENDING
    match.save(update_fields=["scheduled_date", "scheduled_time", "venue", "status", "updated_at"])

    MatchConfirmation.objects.filter(match=match).delete()
    MatchConfirmation.objects.bulk_create([
        MatchConfirmation(match=match, team_id=match.team1_id),
        MatchConfirmation(match=match, team_id=match.team2_id),
    ])
    logger.info("Match %s scheduled for %s %s by %s", match.pk, date, time, user.pk)
    return match


@transaction.atomic
def confirm_match_for_team(match: Match, team, user) -> Match:
    """The match only becomes confirmed once both teams have confirmed."""
    match = _lock_match(match)
    _require_player(match, team, user)
    _require_open(match)
    if match.scheduled_date is None:
        raise ValidationError("This match has not been scheduled yet.")

    own, other = _own_and_opponent(match, team)
    own.status = MatchConfirmation.Status.CONFIRMED
    _clear_proposal(own)
    own.responded_at = timezone.now()
    own.save()
    _sync_match_status(match, own, other)
    logger.info("Team %s confirmed match %s (match now %s)", team.pk, match.pk, match.status)
    return match


@transaction.atomic
def propose_reschedule(match: Match, team, date, time, message: str, user) -> MatchConfirmation:
    match = _lock_match(match)
    _require_player(match, team, user)
    _require_open(match)
    if date is None or time is None:
        raise ValidationError("Please choose a new date and time.")

    own, other = _own_and_opponent(match, team)
    if other.status == OPEN:
        raise ValidationError("Your opponent has proposed a new time. Accept it or send a counter-proposal.")

    own.round = own.round if own.status == OPEN else 1
    own.status = OPEN
    own.proposed_date, own.proposed_time, own.message = date, time, (message or "")
    own.responded_at = timezone.now()
    own.save()

    other.status = MatchConfirmation.Status.PENDING
    other.save(update_fields=["status"])
    _sync_match_status(match, own, other)
    logger.info("Team %s proposed %s %s for match %s", team.pk, date, time, match.pk)
    return own


@transaction.atomic
def counter_propose_reschedule(match: Match, team, date, time, message: str, user) -> MatchConfirmation:
    match = _lock_match(match)
    _require_player(match, team, user)
    _require_open(match)
    if date is None or time is None:
        raise ValidationError("Please choose a new date and time.")

    own, other = _own_and_opponent(match, team)
    if other.status != OPEN:
        raise ValidationError("There is no proposal to counter.")
    next_round = other.round + 1
    if next_round > max_reschedule_rounds():
        raise ValidationError(
            "Maximum reschedule rounds reached. Please accept the last proposal or contact the league admin."
        )

    own.status = OPEN
    own.round = next_round
    own.proposed_date, own.proposed_time, own.message = date, time, (message or "")
    own.responded_at = timezone.now()
    own.save()

    # The opponent's proposal is answered; it keeps its round for history
    other.status = MatchConfirmation.Status.PENDING
    other.save(update_fields=["status"])
    _sync_match_status(match, own, other)
    logger.info("Team %s counter-proposed for match %s (round %d)", team.pk, match.pk, next_round)
    return own


@transaction.atomic
def accept_reschedule(match: Match, team, user) -> Match:
    match = _lock_match(match)
    _require_player(match, team, user)
    _require_open(match)

    own, other = _own_and_opponent(match, team)
    if other.status != OPEN:
        raise ValidationError("There is no proposal to accept.")

    match.scheduled_date = other.proposed_date
    match.scheduled_time = other.proposed_time
    match.save(update_fields=["scheduled_date", "scheduled_time", "updated_at"])

    now = timezone.now()
    for c in (own, other):
        c.status = MatchConfirmation.Status.CONFIRMED
        c.responded_at = now
        _clear_proposal(c)
        c.save(update_fields=["status", "responded_at", "proposed_date", "proposed_time", "message"])
    _sync_match_status(match, own, other)
    logger.info("Team %s accepted reschedule of match %s to %s %s", team.pk, match.pk,
                match.scheduled_date, match.scheduled_time)
    return match


def get_match_confirmations_status(match: Match) -> ConfirmationStatus:
    result = ConfirmationStatus(match_id=match.pk)
    rows = MatchConfirmation.objects.filter(match=match).select_related("team")
    for c in rows:
        tc = TeamConfirmation(
            team_id=c.team_id,
            team_name=c.team.name,
            status=c.status,
            round=c.round,
            status_label=c.get_status_display(),
            proposed_date=c.proposed_date,
            proposed_time=c.proposed_time,
            message=c.message,
        )
        result.teams[c.team_id] = tc
        result.current_round = max(result.current_round, c.round)
        if c.status == OPEN:
            result.open_proposal = tc
    result.both_confirmed = len(result.teams) == 2 and all(
        t.status == MatchConfirmation.Status.CONFIRMED for t in result.teams.values()
    )
    return result


# ---------------- results ----------------
@transaction.atomic
def record_result(match: Match, sets: Sequence[SetScore], user) -> Match:
    """
    Validate the sets, store them, close the match and credit both registrations.
    Everything commits together or not at all.
    """
    match = _lock_match(match)
    if match.status == Match.Status.CANCELLED:
        raise ValidationError("Cannot record a result for a cancelled match.")
    if match.status == Match.Status.COMPLETED:
        raise ValidationError("A result has already been recorded for this match.")

    if not can_manage_league(user, match.league):
        if not match.has_player(user):
            raise PermissionDenied("You are not allowed to record this result.")
        if match.status != Match.Status.CONFIRMED:
            raise ValidationError("Both teams must confirm the match before a result can be entered.")

    outcome = validate_match(sets, match.league.match_format)

    regs = {
        r.team_id: r
        for r in LeagueRegistration.objects.filter(league=match.league, team_id__in=[match.team1_id, match.team2_id])
    }
    if len(regs) != 2:
        raise ValidationError("Both teams must be registered in the league.")

    MatchSet.objects.bulk_create([
        MatchSet(match=match, set_number=i, team1_games=g1, team2_games=g2)
        for i, (g1, g2) in enumerate(sets, start=1)
    ])
    winner, loser = (match.team1, match.team2) if outcome.team1_won else (match.team2, match.team1)
    match.team1_score = outcome.team1_sets
    match.team2_score = outcome.team2_sets
    match.winner_team = winner
    match.status = Match.Status.COMPLETED
    match.save(update_fields=["team1_score", "team2_score", "winner_team", "status", "updated_at"])

    apply_result(regs[winner.pk], regs[loser.pk], outcome.winner_sets, outcome.loser_sets)

    league_id = match.league_id
    transaction.on_commit(
        lambda: result_recorded.send(sender=Match, match=match, league_id=league_id)
    )
    logger.info("Result recorded for match %s: %s, winner team %s", match.pk, score_string(sets), winner.pk)
    return match


@transaction.atomic
def cancel_match(match: Match, user) -> Match:
    match = _lock_match(match)
    _require_manager(match, user)
    if match.status == Match.Status.COMPLETED:
        raise ValidationError("A completed match cannot be cancelled.")
    match.status = Match.Status.CANCELLED
    match.save(update_fields=["status", "updated_at"])
    logger.info("Match %s cancelled by %s", match.pk, user.pk)
    return match


# ---------------- queries ----------------
def _user_matches(user):
    return (
        Match.objects.filter(
            Q(team1__player1=user) | Q(team1__player2=user) | Q(team2__player1=user) | Q(team2__player2=user)
        )
        .select_related("league", "division", "team1", "team2", "winner_team")
        .prefetch_related("sets", "confirmations")
        .distinct()
    )


def matches_for_user(user):
    """(upcoming, past) querysets for the user's teams."""
    qs = _user_matches(user)
    upcoming = qs.filter(status__in=[Match.Status.PENDING, Match.Status.CONFIRMED]).order_by(
        "scheduled_date", "scheduled_time", "round_number", "match_number"
    )
    past = qs.filter(status__in=[Match.Status.COMPLETED, Match.Status.CANCELLED]).order_by(
        "-scheduled_date", "-updated_at"
    )
    return upcoming, past


def pending_confirmations_for(user):
    """Scheduled matches where one of the user's teams still has to answer."""
    return (
        MatchConfirmation.objects.filter(
            Q(team__player1=user) | Q(team__player2=user),
            status=MatchConfirmation.Status.PENDING,
            match__status=Match.Status.PENDING,
            match__scheduled_date__isnull=False,
        )
        .select_related("match", "match__team1", "match__team2", "match__league", "team")
        .order_by("match__scheduled_date", "match__scheduled_time")
    )
