"""
Shared fixtures: users of every role, complete teams and a league with
approved registrations in one division.
"""
import datetime

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from leagues.models import Division, League, LeagueRegistration
from teams.models import Team

User = get_user_model()

PASSWORD = "pass-1234-word"


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(email, role=User.Roles.PLAYER, approved=True, **extra):
        return User.objects.create_user(
            username=email,
            email=email,
            password=PASSWORD,
            role=role,
            is_approved=approved,
            full_name=extra.pop("full_name", email.split("@")[0].title()),
            **extra,
        )
    return _make


@pytest.fixture
def super_admin(db):
    return User.objects.create_superuser(username="root@padel.test", email="root@padel.test", password=PASSWORD)


@pytest.fixture
def league_admin(make_user):
    return make_user("admin@padel.test", role=User.Roles.LEAGUE_ADMIN)


@pytest.fixture
def pending_admin(make_user):
    return make_user("waiting@padel.test", role=User.Roles.LEAGUE_ADMIN, approved=False)


@pytest.fixture
def players(make_user):
    return [make_user(f"p{i}@padel.test") for i in range(1, 9)]


@pytest.fixture
def make_team(db):
    def _make(name, p1, p2=None):
        return Team.objects.create(name=name, player1=p1, player2=p2, created_by=p1)
    return _make


@pytest.fixture
def teams(players, make_team):
    """Four complete teams: Aces, Bandeja, Chiquita, Drop."""
    names = ["Aces", "Bandeja", "Chiquita", "Drop"]
    return [make_team(n, players[2 * i], players[2 * i + 1]) for i, n in enumerate(names)]


@pytest.fixture
def league(league_admin):
    today = datetime.date.today()
    return League.objects.create(
        name="Autumn League",
        start_date=today + datetime.timedelta(days=7),
        end_date=today + datetime.timedelta(days=90),
        max_teams=16,
        match_format=League.Format.BEST_OF_3,
        status=League.Status.REGISTRATION_OPEN,
        is_approved=True,
        created_by=league_admin,
    )


@pytest.fixture
def division(league):
    return Division.objects.create(league=league, name="Division 1", level=1, max_teams=8)


@pytest.fixture
def registrations(teams, league, division):
    return [
        LeagueRegistration.objects.create(
            team=t, league=league, division=division, status=LeagueRegistration.Status.APPROVED
        )
        for t in teams
    ]


@pytest.fixture
def login(client):
    def _login(user):
        client.force_login(user)
        return client
    return _login
