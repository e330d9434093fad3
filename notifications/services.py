# notifications/services.py
from __future__ import annotations

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, body: str, *, text_body: str | None = None) -> bool:
    """
    Send one HTML email with a plain-text alternative.
    Returns False on delivery failure instead of raising, so callers never
    roll back their own writes because of the mail relay.
    """
    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body or strip_tags(body),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    message.attach_alternative(body, "text/html")
    try:
        message.send(fail_silently=False)
    except (SMTPException, OSError, ValueError):
        # BadHeaderError is a ValueError
        logger.exception("Email to %s failed (subject=%r)", to, subject)
        return False
    logger.info("Email sent to %s (subject=%r)", to, subject)
    return True


def send_team_invitation_email(to: str, team_name: str, captain_name: str) -> bool:
    ctx = {
        "team_name": team_name,
        "captain_name": captain_name,
        "teams_url": f"{settings.SITE_URL}/teams/",
        "register_url": f"{settings.SITE_URL}/accounts/register/",
    }
    html = render_to_string("notifications/team_invitation.html", ctx)
    return send_email(to, f"You've been invited to join {team_name}", html)


def send_teammate_added_email(to: str, team_name: str, captain_name: str) -> bool:
    ctx = {
        "team_name": team_name,
        "captain_name": captain_name,
        "teams_url": f"{settings.SITE_URL}/teams/",
    }
    html = render_to_string("notifications/teammate_added.html", ctx)
    return send_email(to, f"You were added to {team_name}", html)
