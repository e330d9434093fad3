# accounts/views.py
import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import login, logout, get_user_model
from django.contrib.auth.decorators import login_required
from django.core.cache import cache
from django.shortcuts import render, redirect
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.csrf import csrf_protect

from .forms import RegisterForm, LoginForm, ProfileForm

User = get_user_model()
logger = logging.getLogger(__name__)

# Simple cache-based rate limiter for login attempts
ATTEMPTS = getattr(settings, "LOGIN_RATE_LIMIT_ATTEMPTS", 5)
LOCKOUT_MIN = getattr(settings, "LOGIN_RATE_LIMIT_LOCKOUT_MINUTES", 10)

def _client_ip(request):
    return request.META.get("REMOTE_ADDR", "0.0.0.0")

def _login_is_locked(request, username):
    ip = _client_ip(request)
    key = f"login:lock:{ip}:{username}"
    return cache.get(key) is not None

def _register_failed_attempt(request, username):
    ip = _client_ip(request)
    akey = f"login:attempts:{ip}:{username}"
    count = cache.get(akey, 0) + 1
    cache.set(akey, count, LOCKOUT_MIN * 60)
    if count >= ATTEMPTS:
        lkey = f"login:lock:{ip}:{username}"
        cache.set(lkey, True, LOCKOUT_MIN * 60)
        logger.warning("Login locked for %s from %s after %d attempts", username, ip, count)

def _reset_attempts(request, username):
    ip = _client_ip(request)
    cache.delete_many([f"login:attempts:{ip}:{username}", f"login:lock:{ip}:{username}"])


@csrf_protect
def register_view(request):
    if request.method == "POST":
        form = RegisterForm(request.POST)
        if form.is_valid():
            user = form.save()
            if user.role == User.Roles.LEAGUE_ADMIN:
                messages.info(
                    request,
                    "Registration successful. A super admin must approve your league admin account before you can create leagues.",
                )
            else:
                messages.success(request, "Registration successful. You can log in now.")
            return redirect("accounts:login")
    else:
        form = RegisterForm()
    return render(request, "accounts/register.html", {"form": form})


@csrf_protect
def login_view(request):
    next_url = request.GET.get("next") or request.POST.get("next")
    username = (request.POST.get("username") or "").strip().lower()

    if request.method == "POST":
        if _login_is_locked(request, username):
            messages.error(request, "Too many attempts. Try again later.")
            return render(request, "accounts/login.html", {"form": LoginForm(request), "next": next_url})

        form = LoginForm(request, data=request.POST)
        if form.is_valid():
            user = form.get_user()
            _reset_attempts(request, username)
            login(request, user)
            messages.success(request, "Welcome back!")

            if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
                return redirect(next_url)
            if user.is_super_admin():
                return redirect("backoffice:dashboard")
            if user.is_league_admin():
                return redirect("leagues:league_list")
            return redirect("teams:team_list")
        else:
            _register_failed_attempt(request, username)
    else:
        form = LoginForm(request)

    return render(request, "accounts/login.html", {"form": form, "next": next_url})


@login_required
@csrf_protect
def logout_view(request):
    if request.method == "POST":
        logout(request)
        messages.info(request, "You have been logged out.")
        return redirect("home")
    return render(request, "accounts/logout_confirm.html")


@login_required
@csrf_protect
def profile_view(request):
    user = request.user
    form = ProfileForm(request.POST or None, files=request.FILES or None, instance=user)

    if request.method == "POST":
        action = request.POST.get("action")

        if action == "remove_avatar":
            if user.avatar:
                user.avatar.delete(save=False)
            user.avatar = None
            user.save(update_fields=["avatar"])
            messages.success(request, "Profile photo removed.")
            return redirect("accounts:profile")

        if form.is_valid():
            form.save()
            messages.success(request, "Profile updated.")
            return redirect("accounts:profile")

    return render(request, "accounts/profile.html", {"form": form})


@login_required
@csrf_protect
def delete_account_view(request):
    """
    True delete. Blocks deleting the last active super admin.
    """
    if request.method == "POST":
        u = request.user
        if u.is_super_admin() and User.objects.filter(role=User.Roles.SUPER_ADMIN, is_active=True).count() <= 1:
            messages.error(request, "You can’t delete the last active super admin.")
            return redirect("accounts:profile")
        if u.leagues_created.exists():
            messages.error(request, "Delete your leagues before deleting your account.")
            return redirect("accounts:profile")
        if u.teams_created.filter(registrations__isnull=False).exists():
            messages.error(request, "Leave all leagues with your teams before deleting your account.")
            return redirect("accounts:profile")
        logout(request)
        u.delete()
        messages.info(request, "Your account has been deleted.")
        return redirect("home")

    return render(request, "accounts/delete_account_confirm.html")
