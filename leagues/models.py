# leagues/models.py
from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class League(models.Model):
    class Format(models.TextChoices):
        BEST_OF_3 = "best_of_3", "Best of 3 sets"
        BEST_OF_5 = "best_of_5", "Best of 5 sets"
        SINGLE_SET = "single_set", "Single set"

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        REGISTRATION_OPEN = "registration_open", "Registration open"
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"

    # Statuses in which teams may still register
    OPEN_STATUSES = (Status.DRAFT, Status.REGISTRATION_OPEN, Status.ACTIVE)

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    registration_deadline = models.DateField(null=True, blank=True)
    max_teams = models.PositiveSmallIntegerField(default=16, validators=[MinValueValidator(2)])
    entry_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    venue = models.CharField(max_length=200, blank=True)
    match_format = models.CharField(max_length=16, choices=Format.choices, default=Format.BEST_OF_3)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)
    is_approved = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="leagues_created"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_date", "name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="league_end_after_start",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({"end_date": "End date must be after the start date."})
        if self.registration_deadline and self.start_date and self.registration_deadline >= self.start_date:
            raise ValidationError({"registration_deadline": "Registration deadline must be before the start date."})

    @property
    def sets_to_win(self) -> int:
        return {
            self.Format.BEST_OF_3: 2,
            self.Format.BEST_OF_5: 3,
            self.Format.SINGLE_SET: 1,
        }[self.match_format]

    @property
    def accepts_registrations(self) -> bool:
        return self.status in self.OPEN_STATUSES


class Division(models.Model):
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="divisions")
    name = models.CharField(max_length=80)
    level = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    max_teams = models.PositiveSmallIntegerField(default=8, validators=[MinValueValidator(2)])

    class Meta:
        ordering = ["league_id", "level"]
        constraints = [
            models.UniqueConstraint(fields=["league", "level"], name="unique_division_level_per_league"),
        ]

    def __str__(self) -> str:
        return f"{self.league.name} · {self.name}"


class LeagueRegistration(models.Model):
    """A team's entry in a league division, carrying its running standings."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    team = models.ForeignKey("teams.Team", on_delete=models.CASCADE, related_name="registrations")
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name="registrations")
    division = models.ForeignKey(Division, on_delete=models.CASCADE, related_name="registrations")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)

    points = models.PositiveIntegerField(default=0)
    bonus_points = models.PositiveIntegerField(default=0)
    matches_played = models.PositiveIntegerField(default=0)
    matches_won = models.PositiveIntegerField(default=0)

    registered_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["league_id", "division__level", "team__name"]
        constraints = [
            models.UniqueConstraint(fields=["team", "league"], name="unique_team_per_league"),
            models.CheckConstraint(
                condition=models.Q(matches_won__lte=models.F("matches_played")),
                name="registration_won_le_played",
            ),
        ]
        indexes = [
            models.Index(fields=["league", "division", "status"], name="reg_league_div_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.team.name} @ {self.league.name}"

    @property
    def total_points(self) -> int:
        return self.points + self.bonus_points

    @property
    def matches_lost(self) -> int:
        return self.matches_played - self.matches_won

    @property
    def win_percentage(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.matches_won / self.matches_played * 100

    @property
    def points_per_match(self) -> float:
        if not self.matches_played:
            return 0.0
        return self.total_points / self.matches_played
