# teams/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from accounts.permissions import can_manage_team
from leagues.standings import invalidate_standings

from notifications.services import send_team_invitation_email, send_teammate_added_email

from .models import Team, TeamInvitation

User = get_user_model()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamCreated:
    team: Team
    invitation: Optional[TeamInvitation]
    email_sent: bool


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _require_manager(team: Team, user) -> None:
    if not can_manage_team(user, team):
        raise PermissionDenied("Only the team creator can manage this team.")


def create_team(creator, name: str, teammate_email: str) -> TeamCreated:
    """
    Create a team with the creator as player1.
    A registered teammate joins right away; anyone else gets an invitation email.
    """
    name = (name or "").strip()
    email = _normalize_email(teammate_email)
    if not name:
        raise ValidationError("Team name is required.")
    if not email:
        raise ValidationError("Teammate email is required.")
    if email == _normalize_email(creator.email):
        raise ValidationError("You cannot invite yourself to a team")

    teammate = User.objects.filter(email__iexact=email).first()
    invitation = None
    with transaction.atomic():
        team = Team.objects.create(name=name, player1=creator, player2=teammate, created_by=creator)
        if teammate is None:
            invitation = TeamInvitation.objects.create(team=team, email=email, invited_by=creator)
    logger.info("Team %s created by %s (complete=%s)", team.pk, creator.pk, team.is_complete)

    captain = creator.display_name
    if teammate is None:
        sent = send_team_invitation_email(email, team.name, captain)
    else:
        sent = send_teammate_added_email(teammate.email, team.name, captain)
    return TeamCreated(team=team, invitation=invitation, email_sent=sent)


@transaction.atomic
def respond_to_invitation(invitation: TeamInvitation, user, accept: bool) -> TeamInvitation:
    invitation = TeamInvitation.objects.select_for_update().select_related("team").get(pk=invitation.pk)
    if _normalize_email(user.email) != _normalize_email(invitation.email):
        raise PermissionDenied("This invitation was sent to a different email address.")
    if invitation.status != TeamInvitation.Status.PENDING:
        raise ValidationError("This invitation has already been answered.")

    if accept:
        team = Team.objects.select_for_update().get(pk=invitation.team_id)
        if team.player2_id is not None:
            raise ValidationError("This team already has two players.")
        if team.player1_id == user.pk:
            raise ValidationError("You cannot invite yourself to a team")
        team.player2 = user
        team.save(update_fields=["player2"])
        invitation.status = TeamInvitation.Status.ACCEPTED
    else:
        invitation.status = TeamInvitation.Status.DECLINED

    invitation.responded_at = timezone.now()
    invitation.save(update_fields=["status", "responded_at"])
    logger.info("Invitation %s %s by user %s", invitation.pk, invitation.status, user.pk)
    return invitation


def rename_team(team: Team, name: str, user) -> Team:
    _require_manager(team, user)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required.")
    team.name = name
    team.save(update_fields=["name"])
    # Cached standings carry the team name
    for league_id in team.registrations.values_list("league_id", flat=True):
        transaction.on_commit(partial(invalidate_standings, league_id))
    return team


@transaction.atomic
def add_player(team: Team, email: str, user) -> Team:
    _require_manager(team, user)
    team = Team.objects.select_for_update().get(pk=team.pk)
    email = _normalize_email(email)
    if team.player2_id is not None:
        raise ValidationError("This team already has two players.")
    player = User.objects.filter(email__iexact=email).first() if email else None
    if player is None:
        raise ValidationError("Player not found. They need to create an account first.")
    if player.pk == team.player1_id:
        raise ValidationError("You cannot invite yourself to a team")

    team.player2 = player
    team.save(update_fields=["player2"])
    # Open invitations are moot once the slot is filled
    team.invitations.filter(status=TeamInvitation.Status.PENDING).update(
        status=TeamInvitation.Status.DECLINED, responded_at=timezone.now()
    )
    logger.info("User %s added to team %s", player.pk, team.pk)
    return team


def remove_player2(team: Team, user) -> Team:
    _require_manager(team, user)
    team.player2 = None
    team.save(update_fields=["player2"])
    logger.info("Second player removed from team %s", team.pk)
    return team


@transaction.atomic
def delete_team(team: Team, user) -> None:
    _require_manager(team, user)
    if team.registrations.exists() or team.matches_as_team1.exists() or team.matches_as_team2.exists():
        raise ValidationError("Cannot delete team that is registered for leagues. Please leave all leagues first.")
    logger.info("Team %s deleted by %s", team.pk, user.pk)
    team.delete()


def teams_for_user(user):
    return (
        Team.objects.filter(Q(player1=user) | Q(player2=user))
        .select_related("player1", "player2", "created_by")
        .order_by("name", "id")
    )


def pending_invitations_for(user):
    return (
        TeamInvitation.objects.filter(email__iexact=user.email, status=TeamInvitation.Status.PENDING)
        .select_related("team", "invited_by")
    )
