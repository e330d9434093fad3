# matches/models.py
from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Match(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    league = models.ForeignKey("leagues.League", on_delete=models.CASCADE, related_name="matches")
    division = models.ForeignKey("leagues.Division", on_delete=models.CASCADE, related_name="matches")
    team1 = models.ForeignKey("teams.Team", on_delete=models.PROTECT, related_name="matches_as_team1")
    team2 = models.ForeignKey("teams.Team", on_delete=models.PROTECT, related_name="matches_as_team2")

    round_number = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    match_number = models.PositiveIntegerField(default=1)

    scheduled_date = models.DateField(null=True, blank=True)
    scheduled_time = models.TimeField(null=True, blank=True)
    venue = models.CharField(max_length=200, blank=True)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    team1_score = models.PositiveSmallIntegerField(null=True, blank=True)  # sets won
    team2_score = models.PositiveSmallIntegerField(null=True, blank=True)
    winner_team = models.ForeignKey(
        "teams.Team", null=True, blank=True, on_delete=models.PROTECT, related_name="matches_won"
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="matches_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["league_id", "division_id", "round_number", "match_number", "id"]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(team1=models.F("team2")),
                name="match_teams_distinct",
            ),
        ]
        indexes = [
            models.Index(fields=["league", "division", "round_number"], name="match_league_div_round_idx"),
            models.Index(fields=["scheduled_date"], name="match_scheduled_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.team1.name} vs {self.team2.name} (R{self.round_number})"

    def involves(self, team) -> bool:
        return team.pk in (self.team1_id, self.team2_id)

    def has_player(self, user) -> bool:
        return self.team1.has_player(user) or self.team2.has_player(user)

    @property
    def is_finished(self) -> bool:
        return self.status in (self.Status.COMPLETED, self.Status.CANCELLED)

    def score_display(self) -> str:
        from .scoring import score_string

        return score_string([(s.team1_games, s.team2_games) for s in self.sets.all()])


class MatchSet(models.Model):
    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name="sets")
    set_number = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    team1_games = models.PositiveSmallIntegerField()
    team2_games = models.PositiveSmallIntegerField()

    class Meta:
        ordering = ["match_id", "set_number"]
        constraints = [
            models.UniqueConstraint(fields=["match", "set_number"], name="unique_set_number_per_match"),
        ]

    def __str__(self) -> str:
        return f"Set {self.set_number}: {self.team1_games}-{self.team2_games}"


class MatchConfirmation(models.Model):
    """One row per team per match; tracks the slot negotiation."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        RESCHEDULE_PROPOSED = "reschedule_proposed", "Reschedule proposed"
        DECLINED = "declined", "Declined"

    match = models.ForeignKey(Match, on_delete=models.CASCADE, related_name="confirmations")
    team = models.ForeignKey("teams.Team", on_delete=models.CASCADE, related_name="match_confirmations")
    status = models.CharField(max_length=24, choices=Status.choices, default=Status.PENDING)
    proposed_date = models.DateField(null=True, blank=True)
    proposed_time = models.TimeField(null=True, blank=True)
    message = models.CharField(max_length=500, blank=True)
    round = models.PositiveSmallIntegerField(default=0)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["match_id", "id"]
        constraints = [
            models.UniqueConstraint(fields=["match", "team"], name="unique_confirmation_per_match_team"),
        ]

    def __str__(self) -> str:
        return f"{self.team.name} @ match {self.match_id}: {self.status}"
