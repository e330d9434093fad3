import pytest
from django.core import mail
from django.core.cache import cache
from django.core.exceptions import PermissionDenied, ValidationError
from django.urls import reverse

from leagues.models import LeagueRegistration
from leagues.services import generate_round_robin
from leagues.standings import standings
from teams import services
from teams.models import Team, TeamInvitation


@pytest.mark.django_db
class TestCreateTeam:
    def test_registered_teammate_joins_immediately(self, players):
        result = services.create_team(players[0], "Vibora", "P2@padel.test")
        assert result.team.player2 == players[1]
        assert result.invitation is None
        assert result.email_sent
        assert mail.outbox[0].to == ["p2@padel.test"]
        assert "Vibora" in mail.outbox[0].subject

    def test_unknown_teammate_gets_invitation(self, players):
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        assert result.team.player2 is None
        assert result.invitation.email == "friend@padel.test"
        assert result.invitation.status == TeamInvitation.Status.PENDING
        assert mail.outbox[0].subject == "You've been invited to join Vibora"
        html = mail.outbox[0].alternatives[0][0]
        assert "/accounts/register/" in html

    def test_cannot_invite_yourself(self, players):
        with pytest.raises(ValidationError) as exc:
            services.create_team(players[0], "Solo", " P1@padel.test ")
        assert exc.value.messages == ["You cannot invite yourself to a team"]

    def test_name_required(self, players):
        with pytest.raises(ValidationError):
            services.create_team(players[0], "  ", "p2@padel.test")

    def test_email_failure_keeps_team(self, players, monkeypatch):
        monkeypatch.setattr(services, "send_team_invitation_email", lambda *a, **kw: False)
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        assert not result.email_sent
        assert Team.objects.filter(pk=result.team.pk).exists()


@pytest.mark.django_db
class TestInvitations:
    def test_accept_fills_second_slot(self, players, make_user):
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        friend = make_user("friend@padel.test")
        services.respond_to_invitation(result.invitation, friend, accept=True)
        result.team.refresh_from_db()
        assert result.team.player2 == friend
        assert result.team.is_complete

    def test_other_user_cannot_answer(self, players):
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        with pytest.raises(PermissionDenied):
            services.respond_to_invitation(result.invitation, players[3], accept=True)

    def test_decline(self, players, make_user):
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        friend = make_user("friend@padel.test")
        inv = services.respond_to_invitation(result.invitation, friend, accept=False)
        assert inv.status == TeamInvitation.Status.DECLINED
        assert inv.responded_at is not None
        assert list(services.pending_invitations_for(friend)) == []


@pytest.mark.django_db
class TestManageTeam:
    def test_add_unknown_player(self, players, make_team):
        team = make_team("Half", players[0])
        with pytest.raises(ValidationError) as exc:
            services.add_player(team, "ghost@padel.test", players[0])
        assert exc.value.messages == ["Player not found. They need to create an account first."]

    def test_add_and_remove_player(self, players, make_team):
        team = make_team("Half", players[0])
        team = services.add_player(team, "p5@padel.test", players[0])
        assert team.player2 == players[4]
        services.remove_player2(team, players[0])
        team.refresh_from_db()
        assert team.player2 is None

    def test_only_creator_manages(self, teams, players):
        with pytest.raises(PermissionDenied):
            services.rename_team(teams[0], "Hijacked", players[1])

    def test_delete_blocked_by_registration(self, registrations, teams, players):
        with pytest.raises(ValidationError) as exc:
            services.delete_team(teams[0], players[0])
        assert "Please leave all leagues first" in " ".join(exc.value.messages)

    def test_delete_free_team(self, teams, players):
        services.delete_team(teams[0], players[0])
        assert not Team.objects.filter(name="Aces").exists()

    def test_rename_refreshes_cached_standings(
        self, registrations, league, teams, players, django_capture_on_commit_callbacks
    ):
        assert "Aces" in [r.team.name for r in standings(league)]
        with django_capture_on_commit_callbacks(execute=True):
            services.rename_team(teams[0], "Aces Reloaded", players[0])
        assert cache.get(f"standings:{league.pk}:all") is None
        assert "Aces Reloaded" in [r.team.name for r in standings(league)]

    def test_teams_for_user_covers_both_slots(self, teams, players):
        assert list(services.teams_for_user(players[1])) == [teams[0]]


@pytest.mark.django_db
class TestTeamViews:
    def test_team_list(self, teams, registrations, players, login):
        resp = login(players[0]).get(reverse("teams:team_list"))
        assert resp.status_code == 200
        assert b"Aces" in resp.content

    def test_create_team_view(self, players, login):
        resp = login(players[0]).post(
            reverse("teams:team_create"), {"name": "Smash", "teammate_email": "p3@padel.test"}
        )
        assert resp.status_code == 302
        assert Team.objects.get(name="Smash").player2 == players[2]

    def test_manage_delete_guard_message(self, registrations, teams, players, login):
        client = login(players[0])
        resp = client.post(reverse("teams:team_manage", args=[teams[0].pk]), {"action": "delete"}, follow=True)
        assert Team.objects.filter(pk=teams[0].pk).exists()
        assert "Cannot delete team that is registered for leagues" in resp.content.decode()

    def test_leave_league(self, registrations, league, teams, players, login):
        resp = login(players[0]).post(
            reverse("teams:team_manage", args=[teams[0].pk]),
            {"action": "leave_league", "registration_id": registrations[0].pk},
            follow=True,
        )
        assert not LeagueRegistration.objects.filter(pk=registrations[0].pk).exists()
        assert "Aces left Autumn League." in resp.content.decode()

    def test_leave_league_refused_after_fixtures(self, registrations, league, league_admin, teams, players, login):
        generate_round_robin(league, league_admin)
        resp = login(players[0]).post(
            reverse("teams:team_manage", args=[teams[0].pk]),
            {"action": "leave_league", "registration_id": registrations[0].pk},
            follow=True,
        )
        assert LeagueRegistration.objects.filter(pk=registrations[0].pk).exists()
        assert "already has fixtures" in resp.content.decode()

    def test_cannot_leave_with_another_teams_registration(self, registrations, teams, players, login):
        resp = login(players[0]).post(
            reverse("teams:team_manage", args=[teams[0].pk]),
            {"action": "leave_league", "registration_id": registrations[1].pk},
        )
        assert resp.status_code == 404
        assert LeagueRegistration.objects.filter(pk=registrations[1].pk).exists()

    def test_invitation_accept_view(self, players, make_user, login):
        result = services.create_team(players[0], "Vibora", "friend@padel.test")
        friend = make_user("friend@padel.test")
        login(friend).post(reverse("teams:invitation_respond", args=[result.invitation.pk, "accept"]))
        result.team.refresh_from_db()
        assert result.team.player2 == friend
