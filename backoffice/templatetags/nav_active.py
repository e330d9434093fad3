from django import template

register = template.Library()


@register.simple_tag(takes_context=True)
def active(context, url_prefix: str, cls="active"):
    """Mark a nav link active for its own path and everything below it."""
    path = context.request.path
    if url_prefix == "/":
        return cls if path == "/" else ""
    return cls if path.startswith(url_prefix) else ""
