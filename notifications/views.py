# notifications/views.py
import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from .services import send_email

logger = logging.getLogger(__name__)


@login_required
@require_POST
def send_email_view(request):
    """JSON relay: {to, subject, body} -> one HTML email."""
    try:
        payload = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return JsonResponse({"error": "Invalid JSON body"}, status=400)
    if not isinstance(payload, dict):
        payload = {}

    fields = {name: payload.get(name) or "" for name in ("to", "subject", "body")}
    if not all(isinstance(value, str) for value in fields.values()):
        return JsonResponse({"error": "Fields to, subject and body must be strings"}, status=400)

    to = fields["to"].strip()
    subject = fields["subject"].strip()
    body = fields["body"]
    if not to or not subject or not body:
        return JsonResponse({"error": "Missing required fields: to, subject, or body"}, status=400)
    try:
        validate_email(to)
    except ValidationError:
        return JsonResponse({"error": "Invalid recipient email"}, status=400)

    if not send_email(to, subject, body):
        logger.warning("Email relay failed for user %s", request.user.pk)
        return JsonResponse({"error": "Failed to send email"}, status=500)
    return JsonResponse({"success": True, "message": "Email sent successfully"})
