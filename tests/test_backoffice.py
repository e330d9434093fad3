import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

from leagues.models import League

User = get_user_model()


@pytest.mark.django_db
class TestBackofficeAccess:
    def test_dashboard_for_super_admin(self, super_admin, pending_admin, league, login):
        resp = login(super_admin).get(reverse("backoffice:dashboard"))
        assert resp.status_code == 200
        assert pending_admin.email in resp.content.decode()

    @pytest.mark.parametrize("who", ["league_admin", "players"])
    def test_others_are_sent_to_login(self, who, request, login):
        user = request.getfixturevalue(who)
        user = user[0] if isinstance(user, list) else user
        resp = login(user).get(reverse("backoffice:dashboard"))
        assert resp.status_code == 302
        assert reverse("accounts:login") in resp.url

    def test_users_list_filters(self, super_admin, players, league_admin, login):
        resp = login(super_admin).get(reverse("backoffice:users_list"), {"role": "league_admin"})
        assert resp.status_code == 200
        assert [u.pk for u in resp.context["page"]] == [league_admin.pk]


@pytest.mark.django_db
class TestBackofficeActions:
    def test_change_role(self, super_admin, players, login):
        resp = login(super_admin).post(
            reverse("backoffice:change_role", args=[players[0].pk]), {"role": "league_admin"}, follow=True
        )
        players[0].refresh_from_db()
        assert players[0].role == User.Roles.LEAGUE_ADMIN
        assert f"Updated {players[0].email} to League Admin." in resp.content.decode()

    def test_change_own_role_refused(self, super_admin, login):
        resp = login(super_admin).post(
            reverse("backoffice:change_role", args=[super_admin.pk]), {"role": "player"}, follow=True
        )
        super_admin.refresh_from_db()
        assert super_admin.role == User.Roles.SUPER_ADMIN
        assert "You cannot change your own role" in resp.content.decode()

    def test_approve_league_admin(self, super_admin, pending_admin, login):
        login(super_admin).post(reverse("backoffice:review_league_admin", args=[pending_admin.pk, "approve"]))
        pending_admin.refresh_from_db()
        assert pending_admin.is_approved

    def test_approve_league(self, super_admin, league, login):
        League.objects.filter(pk=league.pk).update(is_approved=False)
        login(super_admin).post(reverse("backoffice:review_league", args=[league.pk, "approve"]))
        league.refresh_from_db()
        assert league.is_approved



def _second_league(league, **extra):
    return League.objects.create(
        name=extra.pop("name", "Winter League"),
        start_date=league.start_date,
        end_date=league.end_date,
        max_teams=8,
        created_by=league.created_by,
        **extra,
    )


@pytest.mark.django_db
class TestBulkLeagueActions:
    def test_bulk_status(self, super_admin, league, login):
        login(super_admin).post(
            reverse("backoffice:bulk_leagues"), {"leagues": [league.pk], "action": "status", "status": "active"}
        )
        league.refresh_from_db()
        assert league.status == League.Status.ACTIVE

    def test_status_action_needs_a_status(self, super_admin, league, login):
        resp = login(super_admin).post(
            reverse("backoffice:bulk_leagues"), {"leagues": [league.pk], "action": "status"}, follow=True
        )
        league.refresh_from_db()
        assert league.status == League.Status.REGISTRATION_OPEN
        assert "Pick at least one league and an action." in resp.content.decode()

    def test_bulk_approve(self, super_admin, league, login):
        other = _second_league(league)
        resp = login(super_admin).post(
            reverse("backoffice:bulk_leagues"), {"leagues": [league.pk, other.pk], "action": "approve"}, follow=True
        )
        other.refresh_from_db()
        assert other.is_approved
        # The first league was already approved
        assert "Approved 1 league(s)." in resp.content.decode()

    def test_bulk_delete_skips_leagues_with_teams(self, super_admin, league, registrations, login):
        empty = _second_league(league)
        resp = login(super_admin).post(
            reverse("backoffice:bulk_leagues"), {"leagues": [league.pk, empty.pk], "action": "delete"}, follow=True
        )
        assert list(League.objects.values_list("pk", flat=True)) == [league.pk]
        content = resp.content.decode()
        assert "Deleted 1 league(s)." in content
        assert "Not deleted, teams are still registered: Autumn League" in content

    def test_league_admin_cannot_bulk_act(self, league_admin, league, login):
        other = _second_league(league)
        resp = login(league_admin).post(
            reverse("backoffice:bulk_leagues"), {"leagues": [other.pk], "action": "approve"}
        )
        assert resp.status_code == 302
        other.refresh_from_db()
        assert not other.is_approved
