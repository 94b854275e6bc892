from datetime import datetime, date
import pytz
from flask import current_app, has_app_context
from ledgerdesk.errors import ValidationError

DEFAULT_TIMEZONE = 'Asia/Kolkata'


def business_tz():
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get('BUSINESS_TIMEZONE', DEFAULT_TIMEZONE)
    return pytz.timezone(name)


def get_local_now():
    """Get current datetime in the business timezone"""
    return datetime.now(business_tz())


def to_local(dt):
    """Convert a datetime object to the business timezone"""
    tz = business_tz()
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def today_iso():
    return get_local_now().date().isoformat()


def display_date(dt):
    """'19 Oct 2026'"""
    return to_local(dt).strftime('%d %b %Y')


def display_time(dt):
    """'03:45 PM'"""
    return to_local(dt).strftime('%I:%M %p')


def parse_date(value, field='date'):
    """
    Parse a 'YYYY-MM-DD' string (or an ISO timestamp, of which only the date
    part is kept) into a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD", field=field)


def parse_optional_date(value, field='date'):
    if value in (None, ''):
        return None
    return parse_date(value, field).isoformat()
