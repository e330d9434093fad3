import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("leagues", "0001_initial"),
        ("teams", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Match",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("round_number", models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("match_number", models.PositiveIntegerField(default=1)),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                ("scheduled_time", models.TimeField(blank=True, null=True)),
                ("venue", models.CharField(blank=True, max_length=200)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("completed", "Completed"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=16)),
                ("team1_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("team2_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="matches_created", to=settings.AUTH_USER_MODEL)),
                ("division", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="matches", to="leagues.division")),
                ("league", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="matches", to="leagues.league")),
                ("team1", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="matches_as_team1", to="teams.team")),
                ("team2", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="matches_as_team2", to="teams.team")),
                ("winner_team", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="matches_won", to="teams.team")),
            ],
            options={
                "ordering": ["league_id", "division_id", "round_number", "match_number", "id"],
                "indexes": [
                    models.Index(fields=["league", "division", "round_number"], name="match_league_div_round_idx"),
                    models.Index(fields=["scheduled_date"], name="match_scheduled_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("team1", models.F("team2")), _negated=True),
                        name="match_teams_distinct",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="MatchSet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("set_number", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("team1_games", models.PositiveSmallIntegerField()),
                ("team2_games", models.PositiveSmallIntegerField()),
                ("match", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sets", to="matches.match")),
            ],
            options={
                "ordering": ["match_id", "set_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("match", "set_number"), name="unique_set_number_per_match"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MatchConfirmation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("reschedule_proposed", "Reschedule proposed"), ("declined", "Declined")], default="pending", max_length=24)),
                ("proposed_date", models.DateField(blank=True, null=True)),
                ("proposed_time", models.TimeField(blank=True, null=True)),
                ("message", models.CharField(blank=True, max_length=500)),
                ("round", models.PositiveSmallIntegerField(default=0)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("match", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="confirmations", to="matches.match")),
                ("team", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="match_confirmations", to="teams.team")),
            ],
            options={
                "ordering": ["match_id", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("match", "team"), name="unique_confirmation_per_match_team"),
                ],
            },
        ),
    ]
