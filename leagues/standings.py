# leagues/standings.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import F
from django.dispatch import receiver

from matches.signals import result_recorded

from .models import Division, League, LeagueRegistration

logger = logging.getLogger(__name__)


def _points_for_win() -> int:
    return getattr(settings, "PADEL_POINTS_FOR_WIN", 3)


def _points_for_loss() -> int:
    return getattr(settings, "PADEL_POINTS_FOR_LOSS", 1)


def _sweep_bonus() -> int:
    return getattr(settings, "PADEL_SWEEP_BONUS", 1)


def bonus_for(winner_sets: int, loser_sets: int) -> int:
    # Only a 3-0 sweep earns the bonus
    return _sweep_bonus() if (winner_sets, loser_sets) == (3, 0) else 0


@transaction.atomic
def apply_result(
    winner: LeagueRegistration, loser: LeagueRegistration, winner_sets: int, loser_sets: int
) -> None:
    """Increment both rows in place; concurrent results never lose an update."""
    locked = {
        r.pk: r
        for r in LeagueRegistration.objects.select_for_update().filter(pk__in=[winner.pk, loser.pk]).order_by("pk")
    }
    if len(locked) != 2:
        raise LeagueRegistration.DoesNotExist("Both teams need a league registration.")

    LeagueRegistration.objects.filter(pk=winner.pk).update(
        points=F("points") + _points_for_win(),
        bonus_points=F("bonus_points") + bonus_for(winner_sets, loser_sets),
        matches_played=F("matches_played") + 1,
        matches_won=F("matches_won") + 1,
    )
    LeagueRegistration.objects.filter(pk=loser.pk).update(
        points=F("points") + _points_for_loss(),
        matches_played=F("matches_played") + 1,
    )
    logger.info(
        "Standings updated: registration %s beat %s %d-%d", winner.pk, loser.pk, winner_sets, loser_sets
    )


@transaction.atomic
def recalculate_standings(league: League) -> int:
    """
    Rebuild every registration of the league from its completed matches.
    Returns the number of matches counted.
    """
    from matches.models import Match

    regs = {
        r.team_id: r
        for r in LeagueRegistration.objects.select_for_update().filter(league=league)
    }
    for r in regs.values():
        r.points = r.bonus_points = r.matches_played = r.matches_won = 0

    counted = 0
    completed = Match.objects.filter(
        league=league, status=Match.Status.COMPLETED, winner_team__isnull=False
    )
    for m in completed:
        loser_id = m.team2_id if m.winner_team_id == m.team1_id else m.team1_id
        winner, loser = regs.get(m.winner_team_id), regs.get(loser_id)
        if winner is None or loser is None:
            logger.warning("Match %s skipped in recalculation: missing registration", m.pk)
            continue
        if m.winner_team_id == m.team1_id:
            w_sets, l_sets = m.team1_score or 0, m.team2_score or 0
        else:
            w_sets, l_sets = m.team2_score or 0, m.team1_score or 0
        winner.points += _points_for_win()
        winner.bonus_points += bonus_for(w_sets, l_sets)
        winner.matches_played += 1
        winner.matches_won += 1
        loser.points += _points_for_loss()
        loser.matches_played += 1
        counted += 1

    LeagueRegistration.objects.bulk_update(
        regs.values(), ["points", "bonus_points", "matches_played", "matches_won"]
    )
    transaction.on_commit(lambda: invalidate_standings(league.pk))
    logger.info("Standings recalculated for league %s from %d matches", league.pk, counted)
    return counted


def sort_key(reg: LeagueRegistration):
    return (-reg.total_points, -reg.win_percentage, -reg.matches_won, reg.team.name.lower())


def _cache_key(league_id: int, division_id: Optional[int]) -> str:
    return f"standings:{league_id}:{division_id or 'all'}"


def standings(league: League, division: Optional[Division] = None) -> List[LeagueRegistration]:
    """Approved registrations ranked by total points, win %, wins, then team name."""
    key = _cache_key(league.pk, division.pk if division else None)
    rows = cache.get(key)
    if rows is not None:
        return rows

    qs = (
        LeagueRegistration.objects.filter(league=league, status=LeagueRegistration.Status.APPROVED)
        .select_related("team", "team__player1", "team__player2", "division")
    )
    if division is not None:
        qs = qs.filter(division=division)
    rows = sorted(qs, key=sort_key)
    cache.set(key, rows, getattr(settings, "PADEL_STANDINGS_CACHE_SECONDS", 300))
    return rows


def leaderboard_rows(league: League, division: Optional[Division] = None) -> List[Dict]:
    rows = []
    for pos, r in enumerate(standings(league, division), start=1):
        team = r.team
        rows.append({
            "position": pos,
            "registration_id": r.pk,
            "team_id": team.pk,
            "team_name": team.name,
            "player1_name": team.player1.display_name,
            "player2_name": team.player2.display_name if team.player2_id else "",
            "division_name": r.division.name,
            "division_level": r.division.level,
            "points": r.points,
            "bonus_points": r.bonus_points,
            "matches_played": r.matches_played,
            "matches_won": r.matches_won,
            "matches_lost": r.matches_lost,
            "win_percentage": round(r.win_percentage, 1),
            "total_points": r.total_points,
            "points_per_match": round(r.points_per_match, 2),
        })
    return rows


def invalidate_standings(league_id: int) -> None:
    division_ids = Division.objects.filter(league_id=league_id).values_list("pk", flat=True)
    keys = [_cache_key(league_id, None)] + [_cache_key(league_id, d) for d in division_ids]
    cache.delete_many(keys)


@receiver(result_recorded, dispatch_uid="leagues_invalidate_standings")
def on_result_recorded(sender, match, league_id, **kwargs):
    invalidate_standings(league_id)
