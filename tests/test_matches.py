"""
Scheduling, two-sided confirmation, reschedule negotiation and results.
"""
import datetime

import pytest
from django.core.cache import cache
from django.core.exceptions import PermissionDenied, ValidationError
from django.urls import reverse

from leagues.models import League, LeagueRegistration
from leagues.standings import standings
from matches import services
from matches.models import Match, MatchConfirmation

NEXT_WEEK = datetime.date.today() + datetime.timedelta(days=7)
SEVEN_PM = datetime.time(19, 0)


@pytest.fixture
def match(registrations, league, division, league_admin, teams):
    m = Match.objects.create(league=league, division=division, team1=teams[0], team2=teams[1], created_by=league_admin)
    return services.schedule_match(m, NEXT_WEEK, SEVEN_PM, "Court 3", league_admin)


def _reg(team, league):
    return LeagueRegistration.objects.get(team=team, league=league)


@pytest.mark.django_db
class TestConfirmation:
    def test_schedule_creates_pending_rows(self, match):
        assert match.status == Match.Status.PENDING
        assert MatchConfirmation.objects.filter(match=match, status="pending").count() == 2

    def test_players_cannot_schedule(self, match, players):
        with pytest.raises(PermissionDenied):
            services.schedule_match(match, NEXT_WEEK, SEVEN_PM, "", players[0])

    def test_confirmed_only_when_both_confirm(self, match, teams, players):
        m = services.confirm_match_for_team(match, teams[0], players[0])
        assert m.status == Match.Status.PENDING
        status = services.get_match_confirmations_status(m)
        assert not status.both_confirmed

        m = services.confirm_match_for_team(match, teams[1], players[3])
        assert m.status == Match.Status.CONFIRMED
        assert services.get_match_confirmations_status(m).both_confirmed

    def test_accept_clears_proposal_details(self, match, teams, players):
        services.propose_reschedule(match, teams[0], NEXT_WEEK, SEVEN_PM, "Rain forecast", players[0])
        services.counter_propose_reschedule(match, teams[1], NEXT_WEEK, SEVEN_PM, "Later?", players[2])
        services.accept_reschedule(match, teams[0], players[0])

        status = services.get_match_confirmations_status(match)
        assert status.open_proposal is None
        for c in MatchConfirmation.objects.filter(match=match):
            assert (c.proposed_date, c.proposed_time, c.message) == (None, None, "")

    def test_outsider_cannot_confirm_for_team(self, match, teams, players):
        with pytest.raises(PermissionDenied):
            services.confirm_match_for_team(match, teams[0], players[5])

    def test_unscheduled_match_cannot_be_confirmed(self, registrations, league, division, teams, players):
        m = Match.objects.create(league=league, division=division, team1=teams[2], team2=teams[3])
        with pytest.raises(ValidationError):
            services.confirm_match_for_team(m, teams[2], players[4])

    def test_pending_confirmations_listed_for_player(self, match, teams, players):
        services.confirm_match_for_team(match, teams[0], players[0])
        assert [c.team_id for c in services.pending_confirmations_for(players[2])] == [teams[1].pk]
        assert not services.pending_confirmations_for(players[0]).exists()


@pytest.mark.django_db
class TestReschedule:
    def test_propose_then_accept(self, match, teams, players):
        new_date = NEXT_WEEK + datetime.timedelta(days=2)
        own = services.propose_reschedule(match, teams[0], new_date, SEVEN_PM, "Rain forecast", players[0])
        assert own.status == MatchConfirmation.Status.RESCHEDULE_PROPOSED
        assert own.round == 1

        m = services.accept_reschedule(match, teams[1], players[2])
        assert m.status == Match.Status.CONFIRMED
        assert m.scheduled_date == new_date
        assert services.get_match_confirmations_status(m).both_confirmed

    def test_cannot_propose_over_open_opponent_proposal(self, match, teams, players):
        services.propose_reschedule(match, teams[0], NEXT_WEEK, SEVEN_PM, "", players[0])
        with pytest.raises(ValidationError):
            services.propose_reschedule(match, teams[1], NEXT_WEEK, SEVEN_PM, "", players[2])

    def test_proposal_resets_opponent_confirmation(self, match, teams, players):
        services.confirm_match_for_team(match, teams[1], players[2])
        services.propose_reschedule(match, teams[0], NEXT_WEEK, SEVEN_PM, "", players[0])
        status = services.get_match_confirmations_status(match)
        assert status.teams[teams[1].pk].status == MatchConfirmation.Status.PENDING
        assert status.open_proposal.team_id == teams[0].pk

    def test_counter_rounds_are_capped(self, match, teams, players):
        d = NEXT_WEEK
        services.propose_reschedule(match, teams[0], d, SEVEN_PM, "", players[0])
        second = services.counter_propose_reschedule(match, teams[1], d, SEVEN_PM, "", players[2])
        assert second.round == 2
        third = services.counter_propose_reschedule(match, teams[0], d, SEVEN_PM, "", players[0])
        assert third.round == 3
        with pytest.raises(ValidationError) as exc:
            services.counter_propose_reschedule(match, teams[1], d, SEVEN_PM, "", players[2])
        assert "Maximum reschedule rounds reached" in " ".join(exc.value.messages)

        # The last proposal can still be accepted
        m = services.accept_reschedule(match, teams[1], players[2])
        assert m.status == Match.Status.CONFIRMED

    def test_counter_without_proposal(self, match, teams, players):
        with pytest.raises(ValidationError):
            services.counter_propose_reschedule(match, teams[1], NEXT_WEEK, SEVEN_PM, "", players[2])

    def test_accept_without_proposal(self, match, teams, players):
        with pytest.raises(ValidationError):
            services.accept_reschedule(match, teams[0], players[0])


@pytest.mark.django_db
class TestRecordResult:
    def _confirm(self, match, teams, players):
        services.confirm_match_for_team(match, teams[0], players[0])
        return services.confirm_match_for_team(match, teams[1], players[2])

    def test_result_updates_standings(self, match, teams, players, league):
        match = self._confirm(match, teams, players)
        m = services.record_result(match, [(6, 3), (4, 6), (7, 5)], players[0])

        assert m.status == Match.Status.COMPLETED
        assert m.winner_team_id == teams[0].pk
        assert (m.team1_score, m.team2_score) == (2, 1)
        assert m.score_display() == "6-3, 4-6, 7-5"

        winner, loser = _reg(teams[0], league), _reg(teams[1], league)
        assert (winner.points, winner.bonus_points, winner.matches_played, winner.matches_won) == (3, 0, 1, 1)
        assert (loser.points, loser.matches_played, loser.matches_won) == (1, 1, 0)

    def test_sweep_bonus_in_best_of_five(self, match, teams, players, league, league_admin):
        League.objects.filter(pk=league.pk).update(match_format=League.Format.BEST_OF_5)
        match.league.refresh_from_db()
        services.record_result(match, [(6, 0), (6, 1), (6, 2)], league_admin)
        winner = _reg(teams[0], league)
        assert (winner.points, winner.bonus_points, winner.total_points) == (3, 1, 4)

    def test_two_nil_earns_no_bonus(self, match, teams, league, league_admin):
        services.record_result(match, [(6, 0), (6, 0)], league_admin)
        assert _reg(teams[0], league).bonus_points == 0

    def test_player_needs_confirmed_match(self, match, players):
        with pytest.raises(ValidationError):
            services.record_result(match, [(6, 3), (6, 3)], players[0])

    def test_outsider_cannot_record(self, match, teams, players):
        match = self._confirm(match, teams, players)
        with pytest.raises(PermissionDenied):
            services.record_result(match, [(6, 3), (6, 3)], players[6])

    def test_invalid_score_changes_nothing(self, match, teams, players, league):
        match = self._confirm(match, teams, players)
        with pytest.raises(ValidationError):
            services.record_result(match, [(6, 3), (6, 6)], players[0])
        match.refresh_from_db()
        assert match.status == Match.Status.CONFIRMED
        assert not match.sets.exists()
        assert _reg(teams[0], league).matches_played == 0

    def test_result_cannot_be_recorded_twice(self, match, league_admin):
        services.record_result(match, [(6, 3), (6, 3)], league_admin)
        with pytest.raises(ValidationError):
            services.record_result(match, [(6, 3), (6, 3)], league_admin)

    def test_cancelled_match_refuses_result(self, match, league_admin):
        services.cancel_match(match, league_admin)
        with pytest.raises(ValidationError):
            services.record_result(match, [(6, 3), (6, 3)], league_admin)

    def test_cached_standings_invalidated_on_commit(
        self, match, league, league_admin, teams, django_capture_on_commit_callbacks
    ):
        before = standings(league)
        assert all(r.matches_played == 0 for r in before)
        assert cache.get(f"standings:{league.pk}:all") is not None

        with django_capture_on_commit_callbacks(execute=True):
            services.record_result(match, [(6, 3), (6, 3)], league_admin)

        assert cache.get(f"standings:{league.pk}:all") is None
        assert standings(league)[0].team_id == teams[0].pk


@pytest.mark.django_db
class TestMatchViews:
    def test_match_list_renders(self, match, players, login):
        client = login(players[0])
        resp = client.get(reverse("matches:match_list"))
        assert resp.status_code == 200
        assert b"Aces vs Bandeja" in resp.content

    def test_confirm_view(self, match, teams, players, login):
        login(players[0]).post(reverse("matches:match_confirm", args=[match.pk]))
        row = MatchConfirmation.objects.get(match=match, team=teams[0])
        assert row.status == MatchConfirmation.Status.CONFIRMED

    def test_result_form_posts_sets(self, match, teams, players, login):
        services.confirm_match_for_team(match, teams[0], players[0])
        services.confirm_match_for_team(match, teams[1], players[2])
        client = login(players[0])
        resp = client.post(
            reverse("matches:match_result", args=[match.pk]),
            {"set1_team1": 6, "set1_team2": 2, "set2_team1": 7, "set2_team2": 6},
        )
        assert resp.status_code == 302
        match.refresh_from_db()
        assert match.status == Match.Status.COMPLETED

    def test_result_form_shows_set_error(self, match, league_admin, login):
        resp = login(league_admin).post(
            reverse("matches:match_result", args=[match.pk]),
            {"set1_team1": 8, "set1_team2": 6, "set2_team1": 6, "set2_team2": 0},
        )
        assert resp.status_code == 200
        assert "Set 1: Maximum games in a set is 7" in resp.content.decode()
