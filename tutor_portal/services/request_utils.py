"""Small parsing helpers shared by the API handlers."""

import math


def json_body(request):
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def parse_int_arg(value, default=None, minimum=None, maximum=None):
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None:
        parsed = max(parsed, minimum)
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed


def is_truthy_arg(value):
    return str(value or '').strip().lower() in {'1', 'true', 'yes', 'on'}


def paginate(items, page, limit):
    """Return ``(page_items, {page, limit, total, pages})`` for a 1-based page."""
    total = len(items)
    start = (page - 1) * limit
    return items[start:start + limit], {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': int(math.ceil(total / float(limit))) if limit else 0,
    }
