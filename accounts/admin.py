# accounts/admin.py
from django.contrib import admin, messages
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import RoleChangeLog

User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("email", "full_name", "role", "is_approved", "is_staff", "is_active", "last_login")
    list_filter = ("role", "is_approved", "is_staff", "is_superuser", "is_active")
    search_fields = ("email", "full_name", "username", "phone")
    ordering = ("email",)

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Profile"), {"fields": ("full_name", "email", "phone", "country", "avatar")}),
        (_("Role"), {"fields": ("role", "is_approved")}),
        (_("Permissions"), {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("username", "email", "full_name", "role", "password1", "password2")}),
    )
    actions = ["approve_league_admins"]

    def get_readonly_fields(self, request, obj=None):
        ro = list(super().get_readonly_fields(request, obj))
        if not request.user.is_superuser:
            ro += ["role", "is_superuser", "user_permissions"]
        ro += ["last_login", "date_joined"]
        return ro

    def delete_model(self, request, obj):
        if obj.is_superuser and User.objects.filter(is_superuser=True, is_active=True).count() <= 1:
            self.message_user(request, "You can’t delete the last active superuser.", level=messages.ERROR)
            return
        return super().delete_model(request, obj)

    @admin.action(description="Approve selected league admins")
    def approve_league_admins(self, request, queryset):
        from .services import approve_league_admin

        qs = queryset.filter(role=User.Roles.LEAGUE_ADMIN, is_approved=False)
        count = 0
        for u in qs:
            approve_league_admin(u, request.user, approved=True)
            count += 1
        self.message_user(request, f"Approved {count} league admin(s).")


@admin.register(RoleChangeLog)
class RoleChangeLogAdmin(admin.ModelAdmin):
    list_display = ["target", "changed_by", "old_role", "new_role", "changed_at"]
    list_filter = ["old_role", "new_role", "changed_at"]
    search_fields = ["target__email", "changed_by__email", "reason"]
