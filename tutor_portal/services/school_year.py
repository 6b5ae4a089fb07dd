"""Dutch school years run from August to July."""

from datetime import date, datetime, timezone


def _coerce_date(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raw = str(value or '').strip()
    if not raw:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(raw.replace('Z', '+00:00'))


def get_school_year_from_date(value):
    moment = _coerce_date(value)
    year = moment.year
    month = moment.month
    if month >= 8:
        period = 'Q1 (Aug-Okt)' if month <= 10 else 'Q2 (Nov-Dec)'
        return {
            'schoolYear': f"{year}-{year + 1}",
            'academicYear': f"{year}/{year + 1}",
            'semester': 'Eerste',
            'period': period,
        }
    if month <= 3:
        period = 'Q3 (Jan-Mrt)'
    elif month <= 6:
        period = 'Q4 (Apr-Jun)'
    else:
        period = 'Q4 (Jul)'
    return {
        'schoolYear': f"{year - 1}-{year}",
        'academicYear': f"{year - 1}/{year}",
        'semester': 'Tweede',
        'period': period,
    }


def get_school_year_label(value):
    info = get_school_year_from_date(value)
    return f"{info['academicYear']} ({info['semester']} semester)"


def get_school_year_short(value):
    return get_school_year_from_date(value)['schoolYear']


def get_current_school_year():
    return get_school_year_from_date(datetime.now(timezone.utc))


def short_school_year(value):
    """Two-digit form, e.g. ``24/25``."""
    start, end = get_school_year_short(value).split('-')
    return f"{start[-2:]}/{end[-2:]}"
