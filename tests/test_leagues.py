"""
League creation, registrations, round-robin fixtures and standings.
"""
import datetime
from itertools import combinations

import pytest
from django.core.cache import cache
from django.core.exceptions import PermissionDenied, ValidationError
from django.urls import reverse

from leagues import services
from leagues.models import Division, League, LeagueRegistration
from leagues.services import _round_robin_pairs
from leagues.standings import leaderboard_rows, recalculate_standings, sort_key, standings
from matches.models import Match
from matches.services import record_result


def _league_data(**overrides):
    today = datetime.date.today()
    data = {
        "name": "Winter League",
        "start_date": today + datetime.timedelta(days=14),
        "end_date": today + datetime.timedelta(days=100),
        "max_teams": 12,
        "match_format": League.Format.BEST_OF_3,
    }
    data.update(overrides)
    return data


class TestRoundRobinPairs:
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 8])
    def test_every_pair_meets_once(self, n):
        rounds = _round_robin_pairs(list(range(1, n + 1)))
        pairs = [frozenset((p.a, p.b)) for r in rounds for p in r]
        assert len(pairs) == n * (n - 1) // 2
        assert set(pairs) == {frozenset(c) for c in combinations(range(1, n + 1), 2)}

    def test_no_team_plays_twice_in_a_round(self):
        for r in _round_robin_pairs(list(range(1, 7))):
            seen = [t for p in r for t in (p.a, p.b)]
            assert len(seen) == len(set(seen))

    def test_odd_count_gets_a_bye(self):
        rounds = _round_robin_pairs([1, 2, 3])
        assert len(rounds) == 3
        assert all(len(r) == 1 for r in rounds)


@pytest.mark.django_db
class TestCreateLeague:
    def test_divisions_share_the_team_cap(self, league_admin):
        league = services.create_league(league_admin, _league_data(), ["Gold", "Silver", "Bronze", "Iron", "Wood"])
        divisions = list(league.divisions.order_by("level"))
        assert [d.name for d in divisions] == ["Gold", "Silver", "Bronze", "Iron", "Wood"]
        assert [d.level for d in divisions] == [1, 2, 3, 4, 5]
        assert all(d.max_teams == 3 for d in divisions)
        assert league.status == League.Status.DRAFT
        assert not league.is_approved

    def test_default_division(self, league_admin):
        league = services.create_league(league_admin, _league_data(), [])
        assert [d.name for d in league.divisions.all()] == ["Division 1"]

    def test_super_admin_league_is_approved(self, super_admin):
        assert services.create_league(super_admin, _league_data(), ["A"]).is_approved

    def test_unapproved_admin_refused(self, pending_admin):
        with pytest.raises(PermissionDenied):
            services.create_league(pending_admin, _league_data(), ["A"])

    def test_end_before_start_rejected(self, league_admin):
        today = datetime.date.today()
        with pytest.raises(ValidationError):
            services.create_league(
                league_admin, _league_data(start_date=today, end_date=today - datetime.timedelta(days=1)), []
            )


@pytest.mark.django_db
class TestRegistration:
    def test_registration_starts_pending(self, teams, league, division, players):
        reg = services.register_team(teams[0], league, division, players[0])
        assert reg.status == LeagueRegistration.Status.PENDING

    def test_duplicate_registration_rejected(self, teams, league, division, players):
        services.register_team(teams[0], league, division, players[0])
        other = Division.objects.create(league=league, name="Division 2", level=2)
        with pytest.raises(ValidationError) as exc:
            services.register_team(teams[0], league, other, players[1])
        assert "already registered" in " ".join(exc.value.messages)

    def test_incomplete_team_rejected(self, make_team, players, league, division):
        solo = make_team("Solo", players[0])
        with pytest.raises(ValidationError):
            services.register_team(solo, league, division, players[0])

    def test_only_members_register(self, teams, league, division, players):
        with pytest.raises(PermissionDenied):
            services.register_team(teams[0], league, division, players[4])

    def test_full_division(self, teams, league, players):
        small = Division.objects.create(league=league, name="Small", level=3, max_teams=2)
        services.register_team(teams[0], league, small, players[0])
        services.register_team(teams[1], league, small, players[2])
        with pytest.raises(ValidationError) as exc:
            services.register_team(teams[2], league, small, players[4])
        assert "full" in " ".join(exc.value.messages)

    def test_closed_league(self, teams, league, division, players):
        league.status = League.Status.COMPLETED
        league.save()
        with pytest.raises(ValidationError):
            services.register_team(teams[0], league, division, players[0])

    def test_pending_teams_hidden_from_standings(
        self, teams, league, division, players, league_admin, django_capture_on_commit_callbacks
    ):
        reg = services.register_team(teams[0], league, division, players[0])
        assert standings(league) == []
        with django_capture_on_commit_callbacks(execute=True):
            services.set_registration_status(reg, LeagueRegistration.Status.APPROVED, league_admin)
        assert [r.team_id for r in standings(league)] == [teams[0].pk]


@pytest.mark.django_db
class TestFixtures:
    def test_generate_round_robin(self, registrations, league, division, league_admin):
        created = services.generate_round_robin(league, league_admin)
        assert created == 6
        pairs = {frozenset((m.team1_id, m.team2_id)) for m in Match.objects.filter(division=division)}
        assert len(pairs) == 6
        assert Match.objects.filter(division=division).order_by().values("round_number").distinct().count() == 3

    def test_regenerating_is_idempotent(self, registrations, league, league_admin):
        services.generate_round_robin(league, league_admin)
        assert services.generate_round_robin(league, league_admin) == 0
        assert Match.objects.filter(league=league).count() == 6

    def test_only_approved_teams_get_fixtures(self, registrations, league, league_admin):
        registrations[3].status = LeagueRegistration.Status.PENDING
        registrations[3].save()
        assert services.generate_round_robin(league, league_admin) == 3

    def test_players_cannot_generate(self, registrations, league, players):
        with pytest.raises(PermissionDenied):
            services.generate_round_robin(league, players[0])

    def test_no_teams(self, league, division, league_admin):
        with pytest.raises(ValidationError):
            services.generate_round_robin(league, league_admin)

    def test_fixture_info(self, registrations, league, division, league_admin):
        info = services.fixture_info(league, division)
        assert (info.approved_teams, info.potential_matches, info.existing_matches) == (4, 6, 0)
        assert info.can_generate
        services.generate_round_robin(league, league_admin)
        assert not services.fixture_info(league, division).can_generate

    def test_clear_keeps_completed_matches(self, registrations, league, league_admin):
        services.generate_round_robin(league, league_admin)
        first = Match.objects.filter(league=league).first()
        record_result(first, [(6, 1), (6, 1)], league_admin)
        assert services.clear_fixtures(league, league_admin) == 5
        assert list(Match.objects.filter(league=league)) == [first]


@pytest.mark.django_db
class TestStandings:
    def test_sort_order(self, registrations, league):
        a, b, c, d = registrations
        # a and b tie on points; b has the better win rate
        LeagueRegistration.objects.filter(pk=a.pk).update(points=7, matches_played=3, matches_won=2)
        LeagueRegistration.objects.filter(pk=b.pk).update(points=6, bonus_points=1, matches_played=2, matches_won=2)
        LeagueRegistration.objects.filter(pk=c.pk).update(points=2, matches_played=2, matches_won=0)
        LeagueRegistration.objects.filter(pk=d.pk).update(points=2, matches_played=2, matches_won=0)

        rows = leaderboard_rows(league)
        assert [r["team_name"] for r in rows] == ["Bandeja", "Aces", "Chiquita", "Drop"]
        assert [r["position"] for r in rows] == [1, 2, 3, 4]
        assert rows[0]["total_points"] == 7
        assert rows[0]["win_percentage"] == 100.0
        assert rows[0]["points_per_match"] == 3.5
        assert rows[1]["points_per_match"] == 2.33

    def test_name_breaks_full_ties_case_insensitively(self, make_team, players, league, division):
        regs = [
            LeagueRegistration(team=make_team(n, players[0]), league=league, division=division, status="approved")
            for n in ("zebra", "Alpha", "beta")
        ]
        assert [r.team.name for r in sorted(regs, key=sort_key)] == ["Alpha", "beta", "zebra"]

    def test_recalculate_rebuilds_from_matches(self, registrations, league, league_admin, teams):
        services.generate_round_robin(league, league_admin)
        m = Match.objects.filter(league=league).first()
        m = record_result(m, [(6, 1), (6, 1)], league_admin)
        LeagueRegistration.objects.filter(league=league).update(points=50, matches_played=9, matches_won=9)

        assert recalculate_standings(league) == 1
        winner = LeagueRegistration.objects.get(league=league, team=m.winner_team)
        assert (winner.points, winner.matches_played, winner.matches_won) == (3, 1, 1)
        assert LeagueRegistration.objects.filter(league=league, matches_played=0).count() == 2


@pytest.mark.django_db
class TestLeagueViews:
    def test_unapproved_admin_redirected_from_create(self, pending_admin, login):
        resp = login(pending_admin).get(reverse("leagues:league_create"))
        assert resp.status_code == 302
        assert resp.url == reverse("leagues:league_list")

    def test_player_redirected_from_create(self, players, login):
        resp = login(players[0]).get(reverse("leagues:league_create"))
        assert resp.status_code == 302

    def test_approved_admin_creates_league(self, league_admin, login):
        data = _league_data()
        payload = {
            "name": data["name"],
            "start_date": data["start_date"].isoformat(),
            "end_date": data["end_date"].isoformat(),
            "max_teams": 8,
            "entry_fee": "0",
            "match_format": "best_of_3",
            "divisions": "Gold, Silver",
        }
        resp = login(league_admin).post(reverse("leagues:league_create"), payload)
        league = League.objects.get(name="Winter League")
        assert resp.status_code == 302
        assert resp.url == reverse("leagues:league_manage", args=[league.pk])
        assert league.divisions.count() == 2

    def test_manage_page_renders(self, registrations, league, league_admin, login):
        services.generate_round_robin(league, league_admin)
        resp = login(league_admin).get(reverse("leagues:league_manage", args=[league.pk]))
        assert resp.status_code == 200

    def test_other_admin_cannot_manage(self, league, make_user, login):
        from accounts.models import User

        other = make_user("other-admin@padel.test", role=User.Roles.LEAGUE_ADMIN)
        resp = login(other).get(reverse("leagues:league_manage", args=[league.pk]))
        assert resp.status_code == 302

    def test_standings_page(self, registrations, league, players, login):
        resp = login(players[0]).get(reverse("leagues:standings"), {"league": league.pk})
        assert resp.status_code == 200
        assert b"Chiquita" in resp.content

    def test_join_league(self, teams, league, division, players, login):
        resp = login(players[0]).post(
            reverse("leagues:join_league", args=[teams[0].pk]), {"division": division.pk}
        )
        assert resp.status_code == 302
        assert LeagueRegistration.objects.filter(team=teams[0], league=league, status="pending").exists()

    def test_standings_ignores_non_numeric_division(self, registrations, league, players, login):
        resp = login(players[0]).get(reverse("leagues:standings"), {"league": league.pk, "division": "abc"})
        assert resp.status_code == 200
        assert b"Chiquita" in resp.content

    def test_manage_with_bad_registration_id(self, registrations, league, league_admin, login):
        resp = login(league_admin).post(
            reverse("leagues:league_manage", args=[league.pk]),
            {"action": "registration", "registration_id": "abc", "status": "approved"},
        )
        assert resp.status_code == 404

    def test_generate_with_bad_division_id(self, registrations, league, league_admin, login):
        resp = login(league_admin).post(
            reverse("leagues:league_manage", args=[league.pk]), {"action": "generate", "division_id": "abc"}
        )
        assert resp.status_code == 404
        assert not Match.objects.exists()

    def test_join_with_bad_division(self, teams, league, division, players, login):
        resp = login(players[0]).post(reverse("leagues:join_league", args=[teams[0].pk]), {"division": "abc"})
        assert resp.status_code == 200
        assert not LeagueRegistration.objects.exists()

    def test_manager_removes_team(self, registrations, league, league_admin, login):
        resp = login(league_admin).post(
            reverse("leagues:league_manage", args=[league.pk]),
            {"action": "withdraw", "registration_id": registrations[0].pk},
            follow=True,
        )
        assert not LeagueRegistration.objects.filter(pk=registrations[0].pk).exists()
        assert "Aces removed from the league." in resp.content.decode()

    def test_delete_refused_with_teams(self, registrations, league, league_admin, login):
        resp = login(league_admin).post(
            reverse("leagues:league_manage", args=[league.pk]), {"action": "delete"}, follow=True
        )
        assert League.objects.filter(pk=league.pk).exists()
        assert "Cannot delete league with registered teams" in resp.content.decode()


@pytest.mark.django_db
class TestLeagueLifecycle:
    def test_withdraw_before_fixtures(self, registrations, league, players):
        services.withdraw_registration(registrations[0], players[0])
        assert LeagueRegistration.objects.filter(league=league).count() == 3

    def test_withdraw_refused_once_fixtures_exist(self, registrations, league, league_admin, players):
        services.generate_round_robin(league, league_admin)
        with pytest.raises(ValidationError):
            services.withdraw_registration(registrations[0], players[0])

    def test_outsider_cannot_withdraw(self, registrations, players):
        with pytest.raises(PermissionDenied):
            services.withdraw_registration(registrations[0], players[2])

    def test_delete_refused_while_teams_registered(self, registrations, league, league_admin):
        with pytest.raises(ValidationError):
            services.delete_league(league, league_admin)
        assert League.objects.filter(pk=league.pk).exists()

    def test_delete_empty_league_drops_cached_standings(self, league, division, league_admin):
        standings(league, division)
        assert cache.get(f"standings:{league.pk}:{division.pk}") is not None

        services.delete_league(league, league_admin)
        assert not League.objects.filter(pk=league.pk).exists()
        assert cache.get(f"standings:{league.pk}:{division.pk}") is None

    def test_bulk_approve_super_admin_only(self, league, league_admin, super_admin):
        League.objects.filter(pk=league.pk).update(is_approved=False)
        with pytest.raises(PermissionDenied):
            services.bulk_approve([league.pk], league_admin)
        assert services.bulk_approve([league.pk], super_admin) == 1
        league.refresh_from_db()
        assert league.is_approved

    def test_bulk_delete_reports_skipped(self, registrations, league, league_admin, super_admin):
        empty = services.create_league(league_admin, _league_data(), ["Open"])
        result = services.bulk_delete([league.pk, empty.pk], super_admin)
        assert result.deleted == 1
        assert result.skipped == ["Autumn League"]
        assert list(League.objects.values_list("pk", flat=True)) == [league.pk]
