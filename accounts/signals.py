from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver
from .models import User


@receiver(pre_save, sender=User)
def normalize_email(sender, instance: User, **kwargs):
    # Be consistent, lowercase emails everywhere
    if instance.email:
        instance.email = instance.email.strip().lower()


@receiver(pre_save, sender=User)
def approve_non_admin_roles(sender, instance: User, **kwargs):
    # Only league admins wait for approval
    if instance.role != User.Roles.LEAGUE_ADMIN:
        instance.is_approved = True


@receiver(post_save, sender=User)
def ensure_superuser_role(sender, instance: User, created, **kwargs):
    """
    If a superuser is saved with role != super_admin, fix it.
    This may re-save once; subsequent calls are no-ops.
    """
    if instance.is_superuser and instance.role != User.Roles.SUPER_ADMIN:
        instance.role = User.Roles.SUPER_ADMIN
        instance.save(update_fields=["role", "is_approved"])
