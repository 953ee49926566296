from .decorators import require_role, get_current_user_id

from .audit import log_audit

from .transaction import atomic, retry_read_once

from .parsing import parse_datetime, parse_date, parse_money, parse_int, parse_bool, to_clinic_time

__all__ = [
    # Decorators
    "require_role",
    "get_current_user_id",
    # Audit
    "log_audit",
    # Transactions
    "atomic",
    "retry_read_once",
    # Parsing
    "parse_datetime",
    "parse_date",
    "parse_money",
    "parse_int",
    "parse_bool",
    "to_clinic_time",
]
