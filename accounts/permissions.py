# accounts/permissions.py
from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import user_passes_test
from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.shortcuts import redirect

User = get_user_model()


def is_super_admin(user: User) -> bool:
    return bool(user.is_authenticated and (user.is_superuser or getattr(user, "role", None) == "super_admin"))


def is_league_admin(user: User) -> bool:
    return bool(user.is_authenticated and getattr(user, "role", None) == "league_admin")


def can_create_league(user: User) -> bool:
    """Approved league admins and super admins only."""
    if is_super_admin(user):
        return True
    return is_league_admin(user) and bool(getattr(user, "is_approved", False))


def can_manage_league(user: User, league) -> bool:
    return bool(user.is_authenticated and (league.created_by_id == user.pk or is_super_admin(user)))


def can_manage_team(user: User, team) -> bool:
    return bool(user.is_authenticated and (team.created_by_id == user.pk or is_super_admin(user)))


def super_admin_required(view_func=None, login_url="accounts:login"):
    checker = user_passes_test(is_super_admin, login_url=login_url)
    return checker if view_func is None else checker(view_func)


class LeagueCreatorRequiredMixin(LoginRequiredMixin, UserPassesTestMixin):
    """Unapproved league admins and players are sent back with an explanation."""

    def test_func(self):
        return can_create_league(self.request.user)

    def handle_no_permission(self):
        user = self.request.user
        if not user.is_authenticated:
            return super().handle_no_permission()
        if is_league_admin(user):
            messages.error(self.request, "Your league admin account is waiting for approval by a super admin.")
        else:
            messages.error(self.request, "Only approved league admins can create leagues.")
        return redirect("leagues:league_list")
