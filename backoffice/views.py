# backoffice/views.py
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from accounts.forms import AdminRoleUpdateForm
from accounts.models import RoleChangeLog, User
from accounts.permissions import super_admin_required
from accounts.services import approve_league_admin, change_user_role, pending_league_admins
from leagues.forms import BulkLeagueForm
from leagues.models import League, LeagueRegistration
from leagues.services import approve_league, bulk_approve, bulk_delete, bulk_set_status
from matches.models import Match


def _error_text(exc) -> str:
    return " ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)


def _redirect_next(request, fallback: str):
    next_url = request.POST.get("next")
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return redirect(next_url)
    return redirect(fallback)


@login_required
@super_admin_required
def dashboard(request):
    by_role = (
        User.objects.values("role")
        .annotate(total=Count("id"))
        .order_by("role")
    )
    leagues = League.objects.select_related("created_by").annotate(
        teams=Count("registrations", filter=Q(registrations__status=LeagueRegistration.Status.APPROVED))
    )
    context = {
        "now": timezone.now(),
        "total_users": User.objects.count(),
        "by_role": by_role,
        "pending_admins": pending_league_admins(),
        "pending_leagues": leagues.filter(is_approved=False).order_by("created_at"),
        "leagues": leagues.order_by("-start_date", "name"),
        "bulk_form": BulkLeagueForm(),
        "recent_role_changes": RoleChangeLog.objects.select_related("target", "changed_by")[:10],
        "kpi": {
            "leagues": League.objects.count(),
            "active_leagues": League.objects.filter(status=League.Status.ACTIVE).count(),
            "matches_completed": Match.objects.filter(status=Match.Status.COMPLETED).count(),
            "matches_open": Match.objects.filter(
                status__in=[Match.Status.PENDING, Match.Status.CONFIRMED]
            ).count(),
        },
    }
    return render(request, "backoffice/dashboard.html", context)


@login_required
@super_admin_required
def users_list(request):
    """
    Users list with search, role filter and inline role dropdown.
    """
    q = (request.GET.get("q") or "").strip()
    role = request.GET.get("role") or ""

    qs = User.objects.all().order_by("email")
    if q:
        qs = qs.filter(Q(email__icontains=q) | Q(full_name__icontains=q) | Q(username__icontains=q))
    if role in User.Roles.values:
        qs = qs.filter(role=role)

    page = Paginator(qs, 25).get_page(request.GET.get("page"))
    return render(
        request,
        "backoffice/users_list.html",
        {
            "page": page,
            "filters": {"q": q, "role": role},
            "roles_choices": list(User.Roles.choices),
        },
    )


@login_required
@super_admin_required
@require_POST
def change_role(request, user_id):
    target = get_object_or_404(User, pk=user_id)
    form = AdminRoleUpdateForm(target_user=target, acting_user=request.user, data=request.POST)
    if not form.is_valid():
        for err in form.non_field_errors():
            messages.error(request, err)
        for err in form.errors.get("role", []):
            messages.error(request, err)
        return _redirect_next(request, "backoffice:users_list")

    try:
        target = change_user_role(
            target, request.user, form.cleaned_data["role"], form.cleaned_data.get("reason", "")
        )
    except (ValidationError, PermissionDenied) as e:
        messages.error(request, _error_text(e))
    else:
        messages.success(request, f"Updated {target.email} to {target.get_role_display()}.")
    return _redirect_next(request, "backoffice:users_list")


@login_required
@super_admin_required
@require_POST
def review_league_admin(request, user_id, action):
    target = get_object_or_404(User, pk=user_id)
    if action not in {"approve", "reject"}:
        messages.error(request, "Unknown action.")
        return redirect("backoffice:dashboard")
    try:
        approve_league_admin(target, request.user, approved=(action == "approve"))
    except (ValidationError, PermissionDenied) as e:
        messages.error(request, _error_text(e))
    else:
        if action == "approve":
            messages.success(request, f"{target.email} can now create leagues.")
        else:
            messages.info(request, f"{target.email} was set back to player.")
    return redirect("backoffice:dashboard")


@login_required
@super_admin_required
@require_POST
def review_league(request, pk, action):
    league = get_object_or_404(League, pk=pk)
    if action not in {"approve", "reject"}:
        messages.error(request, "Unknown action.")
        return redirect("backoffice:dashboard")
    approve_league(league, action == "approve", request.user)
    messages.success(request, f"League “{league.name}” {'approved' if action == 'approve' else 'rejected'}.")
    return redirect("backoffice:dashboard")


@login_required
@super_admin_required
@require_POST
def bulk_leagues(request):
    form = BulkLeagueForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Pick at least one league and an action.")
        return redirect("backoffice:dashboard")

    ids = [lg.pk for lg in form.cleaned_data["leagues"]]
    action = form.cleaned_data["action"]
    if action == "approve":
        count = bulk_approve(ids, request.user)
        messages.success(request, f"Approved {count} league(s).")
    elif action == "delete":
        result = bulk_delete(ids, request.user)
        messages.success(request, f"Deleted {result.deleted} league(s).")
        if result.skipped:
            messages.warning(
                request, "Not deleted, teams are still registered: " + ", ".join(result.skipped)
            )
    else:
        count = bulk_set_status(ids, form.cleaned_data["status"], request.user)
        messages.success(request, f"Updated {count} league(s).")
    return redirect("backoffice:dashboard")
