import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("teams", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="League",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("registration_deadline", models.DateField(blank=True, null=True)),
                ("max_teams", models.PositiveSmallIntegerField(default=16, validators=[django.core.validators.MinValueValidator(2)])),
                ("entry_fee", models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ("venue", models.CharField(blank=True, max_length=200)),
                ("match_format", models.CharField(choices=[("best_of_3", "Best of 3 sets"), ("best_of_5", "Best of 5 sets"), ("single_set", "Single set")], default="best_of_3", max_length=16)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("registration_open", "Registration open"), ("active", "Active"), ("completed", "Completed")], db_index=True, default="draft", max_length=20)),
                ("is_approved", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="leagues_created", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-start_date", "name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="league_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Division",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=80)),
                ("level", models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("max_teams", models.PositiveSmallIntegerField(default=8, validators=[django.core.validators.MinValueValidator(2)])),
                ("league", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="divisions", to="leagues.league")),
            ],
            options={
                "ordering": ["league_id", "level"],
                "constraints": [
                    models.UniqueConstraint(fields=("league", "level"), name="unique_division_level_per_league"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LeagueRegistration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")], default="pending", max_length=16)),
                ("points", models.PositiveIntegerField(default=0)),
                ("bonus_points", models.PositiveIntegerField(default=0)),
                ("matches_played", models.PositiveIntegerField(default=0)),
                ("matches_won", models.PositiveIntegerField(default=0)),
                ("registered_at", models.DateTimeField(auto_now_add=True)),
                ("division", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="leagues.division")),
                ("league", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="leagues.league")),
                ("team", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="teams.team")),
            ],
            options={
                "ordering": ["league_id", "division__level", "team__name"],
                "indexes": [
                    models.Index(fields=["league", "division", "status"], name="reg_league_div_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("team", "league"), name="unique_team_per_league"),
                    models.CheckConstraint(
                        condition=models.Q(("matches_won__lte", models.F("matches_played"))),
                        name="registration_won_le_played",
                    ),
                ],
            },
        ),
    ]
