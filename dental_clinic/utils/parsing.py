"""
Input coercion for values arriving from the transport layer.
"""
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from flask import current_app

from dental_clinic.errors import ValidationError

CENT = Decimal('0.01')


def to_clinic_time(value):
    """
    Naive clinic-local datetime for value.

    Appointment columns hold naive clinic-local times, so offset-aware input
    is converted to CLINIC_TIMEZONE (the server's local zone when unset) and
    its offset dropped. Naive values and None pass through unchanged.
    """
    if not isinstance(value, datetime) or value.tzinfo is None:
        return value
    tz_name = current_app.config.get('CLINIC_TIMEZONE')
    local = value.astimezone(ZoneInfo(tz_name)) if tz_name else value.astimezone()
    return local.replace(tzinfo=None)


def parse_datetime(value, field='datetime'):
    """
    Accept a datetime or an ISO-8601 string, returned as naive clinic-local time.

    Accepted strings:
        YYYY-MM-DD                  midnight of that date
        YYYY-MM-DDTHH:MM[:SS[.ffffff]]
        either of the above with an offset (+HH:MM) or a trailing Z
    """
    if isinstance(value, datetime):
        return to_clinic_time(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            if len(text) == 10:
                return datetime.combine(date.fromisoformat(text), time.min)
            return to_clinic_time(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise ValidationError(f'Invalid {field}. Use ISO format YYYY-MM-DDTHH:MM', field=field)


def parse_date(value, field='date'):
    """Accept a date or a YYYY-MM-DD string; None and '' pass through as None."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}. Use YYYY-MM-DD', field=field)


def parse_money(value):
    """
    Convert value to a Decimal with exactly two places.

    Floats are refused (binary rounding), as are negative amounts and
    anything finer than a cent.

    Raises:
        ValueError: if the value is not an acceptable amount
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError('amount must be given as a decimal string or integer, not a float')
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError('amount is not a number')
    if not amount.is_finite():
        raise ValueError('amount is not a number')
    if amount < 0:
        raise ValueError('amount must not be negative')
    if amount != amount.quantize(CENT):
        raise ValueError('amount has more than two decimal places')
    return amount.quantize(CENT)


def parse_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field)


def parse_bool(value):
    """JSON booleans as-is; query-string style '1'/'true'/'yes' as True."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return value is True or value == 1
