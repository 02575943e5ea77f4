import re

from django import template
from django.utils.html import escape
from django.utils.safestring import mark_safe
from django.utils.translation import get_language

register = template.Library()


@register.filter
def duration(seconds):
    """
    Seconds as a clock: 95 -> "1:35", 3725 -> "1:02:05".
    Empty for missing values so templates can fall back with |default.
    """
    if seconds in (None, ''):
        return ""
    try:
        seconds = int(seconds)
    except (TypeError, ValueError):
        return ""

    hours, rest = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@register.simple_tag
def localized(obj, field):
    """
    The Arabic version of a field when the active language is Arabic and it
    has been filled in, otherwise the default one.
    """
    if obj is None:
        return ""
    value = getattr(obj, field, "") or ""
    if (get_language() or "").startswith("ar"):
        return getattr(obj, f"{field}_ar", "") or value
    return value


@register.filter
def format_notes(content):
    """
    Show multi-line notes (parent requests, admin replies) as bullet points.
    Each line becomes a bullet, existing bullet characters are dropped.
    """
    if not content:
        return ""

    lines = [line.strip() for line in content.split('\n') if line.strip()]
    if len(lines) == 1:
        return lines[0]

    bullet_points = []
    for line in lines:
        clean_line = re.sub(r'^[•\-\*\+]\s*', '', line).strip()
        if clean_line:
            bullet_points.append(f'• {escape(clean_line)}')

    return mark_safe('<br>'.join(bullet_points))


@register.filter
def percent(value, total):
    """value out of total as a whole percentage."""
    try:
        value, total = float(value), float(total)
    except (TypeError, ValueError):
        return 0
    if total <= 0:
        return 0
    return round(value / total * 100)
