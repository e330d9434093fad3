from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models
from django.db.models import Q


class UserManager(DjangoUserManager):
    use_in_migrations = True

    def create_user(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("role", User.Roles.PLAYER)
        if email:
            email = email.strip().lower()
        return super().create_user(username, email, password, **extra_fields)

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("role", User.Roles.SUPER_ADMIN)
        extra_fields.setdefault("is_approved", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")
        if extra_fields.get("role") != User.Roles.SUPER_ADMIN:
            raise ValueError("Superuser must have role=super_admin.")
        if email:
            email = email.strip().lower()
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Auth user that doubles as the player profile.
    League admins need a super admin to approve them before they can create leagues.
    """
    class Roles(models.TextChoices):
        PLAYER = "player", "Player"
        LEAGUE_ADMIN = "league_admin", "League Admin"
        SUPER_ADMIN = "super_admin", "Super Admin"

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=150, blank=True)
    role = models.CharField(
        max_length=20, choices=Roles.choices, default=Roles.PLAYER, db_index=True
    )
    is_approved = models.BooleanField(default=True)
    phone = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=80, blank=True)
    avatar = models.ImageField(upload_to="avatars/", null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.email or self.username

    def is_super_admin(self) -> bool:
        return bool(self.is_superuser or self.role == self.Roles.SUPER_ADMIN)

    def is_league_admin(self) -> bool:
        return self.role == self.Roles.LEAGUE_ADMIN

    def can_create_league(self) -> bool:
        if self.is_super_admin():
            return True
        return self.is_league_admin() and self.is_approved

    def __str__(self) -> str:
        return f"{self.display_name} ({self.get_role_display()})"

    class Meta:
        ordering = ["email"]
        constraints = [
            # If is_superuser then role must be 'super_admin'
            models.CheckConstraint(
                name="superuser_requires_super_admin_role",
                condition=Q(is_superuser=False) | Q(role="super_admin"),
            ),
        ]


class RoleChangeLog(models.Model):
    target = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="role_change_events",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="role_changes_made",
    )
    old_role = models.CharField(max_length=20)
    new_role = models.CharField(max_length=20)
    reason = models.CharField(max_length=255, blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-changed_at"]
        indexes = [
            models.Index(fields=["changed_at"], name="rolelog_changed_at_idx"),
            models.Index(fields=["old_role", "new_role"], name="rolelog_roles_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.changed_by} -> {self.target}: {self.old_role} → {self.new_role} @ {self.changed_at:%Y-%m-%d %H:%M}"
