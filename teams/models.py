from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q, UniqueConstraint


class Team(models.Model):
    """
    Padel pair. player2 stays empty until the invited teammate signs up and accepts.
    """
    name = models.CharField(max_length=100)
    player1 = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="teams_as_player1"
    )
    player2 = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="teams_as_player2"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="teams_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(player2__isnull=True) | ~Q(player1=F("player2")),
                name="team_players_distinct",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_complete(self) -> bool:
        return self.player1_id is not None and self.player2_id is not None

    def has_player(self, user) -> bool:
        return bool(user and user.pk and user.pk in (self.player1_id, self.player2_id))

    def player_names(self) -> str:
        names = [self.player1.display_name]
        if self.player2_id:
            names.append(self.player2.display_name)
        return " & ".join(names)


class TeamInvitation(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACCEPTED = "accepted", "Accepted"
        DECLINED = "declined", "Declined"

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="invitations")
    email = models.EmailField()
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="team_invitations_sent"
    )
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            UniqueConstraint(
                fields=["team", "email"],
                condition=Q(status="pending"),
                name="unique_pending_invitation_per_team_email",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.email} -> {self.team} [{self.status}]"
