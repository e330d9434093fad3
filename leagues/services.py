# leagues/services.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Max, Q
from django.utils import timezone

from accounts.permissions import can_create_league, can_manage_league, is_super_admin
from matches.models import Match

from .models import Division, League, LeagueRegistration
from .standings import invalidate_standings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pair:
    a: int
    b: int


@dataclass(frozen=True)
class FixtureInfo:
    registered_teams: int
    approved_teams: int
    existing_matches: int
    potential_matches: int

    @property
    def can_generate(self) -> bool:
        return self.approved_teams >= 2 and self.existing_matches < self.potential_matches


def _require_manager(league: League, user) -> None:
    if not can_manage_league(user, league):
        raise PermissionDenied("Only the league creator or a super admin can manage this league.")


# ---------------- Leagues ----------------
@transaction.atomic
def create_league(admin, data: dict, division_names: Sequence[str]) -> League:
    """
    New leagues start as drafts; only super admins get them approved straight away.
    Divisions share the team cap evenly.
    """
    if not can_create_league(admin):
        raise PermissionDenied("Only approved league admins can create leagues.")

    league = League(**data, created_by=admin, status=League.Status.DRAFT, is_approved=is_super_admin(admin))
    league.full_clean()
    league.save()

    names = [n.strip() for n in division_names if n and n.strip()] or ["Division 1"]
    per_division = max(2, math.ceil(league.max_teams / len(names)))
    Division.objects.bulk_create(
        [Division(league=league, name=n, level=i + 1, max_teams=per_division) for i, n in enumerate(names)]
    )
    logger.info("League %s created by %s with %d division(s)", league.pk, admin.pk, len(names))
    return league


def update_league(league: League, data: dict, user) -> League:
    _require_manager(league, user)
    for field, value in data.items():
        setattr(league, field, value)
    league.full_clean()
    league.save()
    return league


def delete_league(league: League, user) -> None:
    """Refused while any team is still registered."""
    _require_manager(league, user)
    if league.registrations.exists():
        raise ValidationError("Cannot delete league with registered teams. Remove all teams first.")
    league_id = league.pk
    # Division keys must be collected before the divisions go
    invalidate_standings(league_id)
    league.delete()
    logger.info("League %s deleted by %s", league_id, user.pk)


def add_division(league: League, name: str, max_teams: int, user) -> Division:
    _require_manager(league, user)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Division name is required.")
    level = (league.divisions.aggregate(m=Max("level"))["m"] or 0) + 1
    return Division.objects.create(league=league, name=name, level=level, max_teams=max_teams)


def approve_league(league: League, approved: bool, user) -> League:
    if not is_super_admin(user):
        raise PermissionDenied("Only super admins can approve leagues.")
    league.is_approved = approved
    league.save(update_fields=["is_approved", "updated_at"])
    logger.info("League %s %s by %s", league.pk, "approved" if approved else "rejected", user.pk)
    return league


def bulk_set_status(league_ids: Iterable[int], status: str, user) -> int:
    if not is_super_admin(user):
        raise PermissionDenied("Only super admins can change league status in bulk.")
    if status not in League.Status.values:
        raise ValidationError("Unknown league status.")
    count = League.objects.filter(pk__in=list(league_ids)).update(status=status, updated_at=timezone.now())
    logger.info("%d league(s) set to %s by %s", count, status, user.pk)
    return count


def bulk_approve(league_ids: Iterable[int], user) -> int:
    if not is_super_admin(user):
        raise PermissionDenied("Only super admins can approve leagues.")
    count = League.objects.filter(pk__in=list(league_ids), is_approved=False).update(
        is_approved=True, updated_at=timezone.now()
    )
    logger.info("%d league(s) approved by %s", count, user.pk)
    return count


@dataclass(frozen=True)
class BulkDeleteResult:
    deleted: int
    skipped: List[str]


@transaction.atomic
def bulk_delete(league_ids: Iterable[int], user) -> BulkDeleteResult:
    """Delete the empty leagues; leagues with registered teams are skipped by name."""
    if not is_super_admin(user):
        raise PermissionDenied("Only super admins can delete leagues in bulk.")
    deleted, skipped = 0, []
    for league in League.objects.filter(pk__in=list(league_ids)).order_by("name"):
        try:
            delete_league(league, user)
        except ValidationError:
            skipped.append(league.name)
        else:
            deleted += 1
    return BulkDeleteResult(deleted=deleted, skipped=skipped)


def visible_leagues(user):
    """Approved leagues for everyone, plus the ones a manager owns."""
    qs = League.objects.select_related("created_by").prefetch_related("divisions")
    if is_super_admin(user):
        return qs
    if user.is_authenticated:
        return qs.filter(Q(is_approved=True) | Q(created_by=user))
    return qs.filter(is_approved=True)


# ---------------- Registrations ----------------
def register_team(team, league: League, division: Division, user) -> LeagueRegistration:
    if not team.has_player(user):
        raise PermissionDenied("You can only register teams you play in.")
    if not team.is_complete:
        raise ValidationError("Your team needs a second player before joining a league.")
    if not league.accepts_registrations:
        raise ValidationError("This league is not accepting registrations.")
    if league.registration_deadline and league.registration_deadline < timezone.localdate():
        raise ValidationError("The registration deadline for this league has passed.")
    if division.league_id != league.pk:
        raise ValidationError("That division does not belong to this league.")

    try:
        with transaction.atomic():
            # Lock the division so capacity checks see concurrent registrations
            division = Division.objects.select_for_update().get(pk=division.pk)
            if LeagueRegistration.objects.filter(team=team, league=league).exists():
                raise ValidationError("Your team is already registered for this league")
            active = LeagueRegistration.objects.filter(league=league).exclude(
                status=LeagueRegistration.Status.REJECTED
            )
            if active.filter(division=division).count() >= division.max_teams:
                raise ValidationError("This division is full.")
            if active.count() >= league.max_teams:
                raise ValidationError("This league is full.")
            reg = LeagueRegistration.objects.create(team=team, league=league, division=division)
    except IntegrityError:
        raise ValidationError("Your team is already registered for this league")
    logger.info("Team %s registered in league %s division %s", team.pk, league.pk, division.pk)
    return reg


def set_registration_status(registration: LeagueRegistration, status: str, user) -> LeagueRegistration:
    _require_manager(registration.league, user)
    if status not in LeagueRegistration.Status.values:
        raise ValidationError("Unknown registration status.")
    registration.status = status
    registration.save(update_fields=["status"])
    transaction.on_commit(lambda: invalidate_standings(registration.league_id))
    logger.info("Registration %s set to %s by %s", registration.pk, status, user.pk)
    return registration


def withdraw_registration(registration: LeagueRegistration, user) -> None:
    """A team leaves a league; only possible before any match involving it exists."""
    team = registration.team
    if not (team.has_player(user) or can_manage_league(user, registration.league)):
        raise PermissionDenied("You cannot withdraw this team.")
    if Match.objects.filter(Q(team1=team) | Q(team2=team), league_id=registration.league_id).exists():
        raise ValidationError("This team already has fixtures in the league and cannot withdraw.")
    league_id = registration.league_id
    registration.delete()
    transaction.on_commit(lambda: invalidate_standings(league_id))
    logger.info("Team %s withdrew from league %s (by %s)", team.pk, league_id, user.pk)


# ---------------- Fixtures ----------------
def _round_robin_pairs(team_ids: List[int]) -> List[List[Pair]]:
    """Circle method with BYE support. Returns list of rounds, each a list of Pair."""
    ids = list(team_ids)
    bye = None
    if len(ids) % 2 == 1:
        ids.append(-1)
        bye = -1
    n = len(ids)
    rounds: List[List[Pair]] = []
    for _ in range(n - 1):
        pairs: List[Pair] = []
        for i in range(n // 2):
            t1 = ids[i]
            t2 = ids[n - 1 - i]
            if t1 != bye and t2 != bye:
                pairs.append(Pair(t1, t2))
        rounds.append(pairs)
        # keep first fixed, rotate the rest right by one
        ids = [ids[0]] + ids[-1:] + ids[1:-1]
    return rounds


def _approved_team_ids(division: Division) -> List[int]:
    return list(
        LeagueRegistration.objects.filter(division=division, status=LeagueRegistration.Status.APPROVED)
        .order_by("team__name", "team_id")
        .values_list("team_id", flat=True)
    )


@transaction.atomic
def generate_round_robin(league: League, user, division: Optional[Division] = None) -> int:
    """
    Every approved pair in a division meets once. Pairs that already have a match
    are skipped, so re-running only fills gaps. Returns the number of matches created.
    """
    _require_manager(league, user)
    divisions = [division] if division is not None else list(league.divisions.all())

    team_ids_by_division = {d.pk: _approved_team_ids(d) for d in divisions}
    if not any(team_ids_by_division.values()):
        raise ValidationError("No approved teams to generate fixtures for.")

    created = 0
    for d in divisions:
        team_ids = team_ids_by_division[d.pk]
        if len(team_ids) < 2:
            continue
        existing = {
            frozenset(p)
            for p in Match.objects.select_for_update()
            .filter(league=league, division=d)
            .values_list("team1_id", "team2_id")
        }
        next_number = (Match.objects.filter(division=d).aggregate(m=Max("match_number"))["m"] or 0) + 1
        new_matches = []
        for rno, pairs in enumerate(_round_robin_pairs(team_ids), start=1):
            for p in pairs:
                key = frozenset((p.a, p.b))
                if key in existing:
                    continue
                existing.add(key)
                new_matches.append(
                    Match(
                        league=league,
                        division=d,
                        team1_id=p.a,
                        team2_id=p.b,
                        round_number=rno,
                        match_number=next_number,
                        venue=league.venue,
                        created_by=user,
                    )
                )
                next_number += 1
        Match.objects.bulk_create(new_matches)
        created += len(new_matches)
        logger.info("Generated %d fixture(s) for league %s division %s", len(new_matches), league.pk, d.pk)
    return created


@transaction.atomic
def clear_fixtures(league: League, user, division: Optional[Division] = None) -> int:
    """Delete every fixture that has no recorded result."""
    _require_manager(league, user)
    qs = Match.objects.filter(league=league).exclude(status=Match.Status.COMPLETED)
    if division is not None:
        qs = qs.filter(division=division)
    count = qs.count()
    qs.delete()
    logger.info("Cleared fixtures for league %s (%d rows)", league.pk, count)
    return count


def fixture_info(league: League, division: Division) -> FixtureInfo:
    regs = LeagueRegistration.objects.filter(league=league, division=division)
    approved = regs.filter(status=LeagueRegistration.Status.APPROVED).count()
    return FixtureInfo(
        registered_teams=regs.count(),
        approved_teams=approved,
        existing_matches=Match.objects.filter(league=league, division=division).count(),
        potential_matches=approved * (approved - 1) // 2,
    )
