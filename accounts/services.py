# accounts/services.py
from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from .models import RoleChangeLog

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def change_user_role(target: User, acting_user: User, new_role: str, reason: str = "") -> User:
    """Super admin only. Writes an audit row for every change."""
    if not acting_user.is_super_admin():
        raise PermissionDenied("You are not allowed to change roles.")
    if target.pk == acting_user.pk:
        raise ValidationError("You cannot change your own role")
    if new_role not in User.Roles.values:
        raise ValidationError("Unknown role.")
    if target.is_superuser and new_role != User.Roles.SUPER_ADMIN:
        raise ValidationError("A superuser must have the Super Admin role.")

    target = User.objects.select_for_update().get(pk=target.pk)
    old_role = target.role
    if old_role == new_role:
        return target

    target.role = new_role
    # Promotions by a super admin count as approval
    if new_role == User.Roles.LEAGUE_ADMIN:
        target.is_approved = True
    target.save(update_fields=["role", "is_approved"])
    RoleChangeLog.objects.create(
        target=target,
        changed_by=acting_user,
        old_role=old_role,
        new_role=new_role,
        reason=reason or "Role changed via admin panel",
    )
    logger.info("Role of user %s changed %s -> %s by %s", target.pk, old_role, new_role, acting_user.pk)
    return target


@transaction.atomic
def approve_league_admin(target: User, acting_user: User, approved: bool = True) -> User:
    """
    Approve or reject a pending league admin. Rejection demotes the account to player.
    """
    if not acting_user.is_super_admin():
        raise PermissionDenied("You are not allowed to approve league admins.")

    target = User.objects.select_for_update().get(pk=target.pk)
    if target.role != User.Roles.LEAGUE_ADMIN:
        raise ValidationError("Only league admin accounts need approval.")

    old_role = target.role
    if approved:
        target.is_approved = True
        target.save(update_fields=["is_approved"])
        reason = "Approved league admin"
    else:
        target.role = User.Roles.PLAYER
        target.save(update_fields=["role", "is_approved"])
        reason = "Rejected league admin request"

    RoleChangeLog.objects.create(
        target=target, changed_by=acting_user, old_role=old_role, new_role=target.role, reason=reason
    )
    logger.info("%s: user %s by %s", reason, target.pk, acting_user.pk)
    return target


def pending_league_admins():
    return User.objects.filter(role=User.Roles.LEAGUE_ADMIN, is_approved=False).order_by("date_joined")
