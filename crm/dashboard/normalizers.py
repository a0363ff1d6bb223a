# crm/dashboard/normalizers.py
"""
Field-name and value normalization for backend records.

The backend (and its older PHP/Firebase predecessors) returns the same
concept under several names: amount_paid / amountPaid / amount,
SalesAgentID / salesAgentId / sales_agent_id, sales_team / salesTeam / team.
Everything here maps raw dicts onto the canonical dataclasses in models.py.

Leniency policy: bad input never raises. Unparseable money becomes 0 and
unparseable dates become INVALID_DATE, but both are logged with the record
id so malformed rows can be traced.
"""

import logging
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .constants import INVALID_DATE
from .models import Callback, DataCenterEntry, Deal, Feedback, Identity, DateValue

logger = logging.getLogger(__name__)

# Money fields in precedence order
AMOUNT_KEYS = ('amount_paid', 'amountPaid', 'amount')

# Epoch values below this are seconds, otherwise milliseconds
EPOCH_MS_THRESHOLD = 1e10

# ISO-8601 strings start with a full calendar date
ISO_DATE_PREFIX = re.compile(r'^\d{4}-\d{2}-\d{2}')

_MISSING = object()


# =============================================================================
# PRIMITIVES
# =============================================================================

def first_present(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key that is present and not None/''."""
    for key in keys:
        value = raw.get(key, _MISSING)
        if value is _MISSING or value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def parse_money(value: Any) -> Optional[float]:
    """
    Parse a money value, returning None when it cannot be read.

    Accepts numbers and strings with currency symbols / thousand separators
    ("$1,200.50"). NaN and infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = str(value).strip().replace('$', '').replace(',', '').replace(' ', '')
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def normalize_amount(raw: Dict[str, Any], record_id: str = "?") -> float:
    """
    Resolve the canonical amount: amount_paid, then amountPaid, then amount.

    The first key that is defined AND parseable wins. Negative amounts
    violate the deal invariant and are clamped to 0.
    """
    for key in AMOUNT_KEYS:
        if key not in raw or raw[key] is None:
            continue
        parsed = parse_money(raw[key])
        if parsed is None:
            logger.warning(f"Unparseable {key}={raw[key]!r} on record {record_id}")
            continue
        if parsed < 0:
            logger.warning(f"Negative amount {parsed} on record {record_id}, using 0")
            return 0.0
        return parsed

    logger.debug(f"No amount on record {record_id}, using 0")
    return 0.0


def _from_epoch(number: float) -> datetime:
    seconds = number if abs(number) < EPOCH_MS_THRESHOLD else number / 1000.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_date(value: Any) -> DateValue:
    """
    Normalize a date-ish value to a naive UTC datetime.

    Accepts datetime/date/pd.Timestamp, ISO-8601 strings (with or without
    'Z'/offset), 'YYYY-MM-DD', epoch seconds or milliseconds (numbers or
    numeric strings; values below 1e10 are seconds) and Firestore-style
    {'seconds': ...} dicts.

    Returns INVALID_DATE for anything else.
    """
    if value is None or value is pd.NaT or isinstance(value, bool):
        return INVALID_DATE

    try:
        if isinstance(value, pd.Timestamp):
            if pd.isna(value):
                return INVALID_DATE
            return _to_naive_utc(value.to_pydatetime())

        if isinstance(value, datetime):
            return _to_naive_utc(value)

        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)

        if isinstance(value, (int, float, Decimal)):
            number = float(value)
            if math.isnan(number) or math.isinf(number):
                return INVALID_DATE
            return _from_epoch(number)

        if isinstance(value, dict) and 'seconds' in value:
            return _from_epoch(float(value['seconds']))

        text = str(value).strip()
        if not text or text.startswith('0000-00-00'):
            return INVALID_DATE

        try:
            return _from_epoch(float(text))
        except ValueError:
            pass

        if not ISO_DATE_PREFIX.match(text):
            return INVALID_DATE
        parsed = pd.to_datetime(text, utc=True, format='ISO8601')
        if pd.isna(parsed):
            return INVALID_DATE
        return _to_naive_utc(parsed.to_pydatetime())

    except (ValueError, TypeError, OverflowError, OSError):
        return INVALID_DATE


def _clean_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _lower_choice(value: Any, default: str) -> str:
    text = _clean_str(value).lower().replace(' ', '_')
    return text or default


def _date_field(raw: Dict[str, Any], keys: Iterable[str], record_id: str, label: str) -> DateValue:
    value = first_present(raw, *keys)
    parsed = normalize_date(value)
    if parsed == INVALID_DATE:
        logger.warning(f"Invalid {label} {value!r} on record {record_id}")
    return parsed


# =============================================================================
# RECORD NORMALIZERS
# =============================================================================

def normalize_deal(raw: Dict[str, Any]) -> Deal:
    """Map a raw deal payload (any generation of the API) onto Deal."""
    deal_id = _clean_str(first_present(raw, 'dealId', 'deal_id', 'DealID', 'id', default=""))

    sales_agent_id = _clean_str(first_present(raw, 'salesAgentId', 'sales_agent_id', 'SalesAgentID'))
    closing_agent_id = _clean_str(first_present(raw, 'closingAgentId', 'closing_agent_id', 'ClosingAgentID'))

    return Deal(
        deal_id=deal_id,
        customer_name=_clean_str(first_present(raw, 'customerName', 'customer_name')),
        amount=normalize_amount(raw, deal_id or "?"),
        sales_agent_id=sales_agent_id,
        sales_agent_name=_clean_str(first_present(
            raw, 'salesAgentName', 'sales_agent_name', 'salesAgent', 'sales_agent'
        )),
        closing_agent_id=closing_agent_id,
        closing_agent_name=_clean_str(first_present(
            raw, 'closingAgentName', 'closing_agent_name', 'closingAgent', 'closing_agent'
        )),
        team=_clean_str(first_present(raw, 'team', 'salesTeam', 'sales_team')),
        service_tier=_clean_str(first_present(raw, 'serviceTier', 'service_tier', 'type_service')),
        status=_lower_choice(first_present(raw, 'status'), 'active'),
        created_at=_date_field(
            raw, ('createdAt', 'created_at', 'signupDate', 'signup_date', 'date'), deal_id, 'createdAt'
        ),
        email=_clean_str(first_present(raw, 'email')),
        phone_number=_clean_str(first_present(raw, 'phoneNumber', 'phone_number', 'phone')),
    )


def normalize_callback(raw: Dict[str, Any]) -> Callback:
    """Map a raw callback payload onto Callback."""
    callback_id = _clean_str(first_present(raw, 'callbackId', 'callback_id', 'id', default=""))

    scheduled_raw = first_present(raw, 'scheduledDate', 'scheduled_date', 'callback_date')

    return Callback(
        callback_id=callback_id,
        customer_name=_clean_str(first_present(raw, 'customerName', 'customer_name')),
        phone_number=_clean_str(first_present(raw, 'phoneNumber', 'phone_number', 'phone')),
        email=_clean_str(first_present(raw, 'email')),
        sales_agent_id=_clean_str(first_present(raw, 'salesAgentId', 'sales_agent_id', 'SalesAgentID')),
        sales_agent_name=_clean_str(first_present(
            raw, 'salesAgentName', 'sales_agent_name', 'salesAgent', 'sales_agent'
        )),
        team=_clean_str(first_present(raw, 'team', 'salesTeam', 'sales_team')),
        status=_lower_choice(first_present(raw, 'status', 'callback_status'), 'pending'),
        priority=_lower_choice(first_present(raw, 'priority'), 'medium'),
        created_at=_date_field(raw, ('createdAt', 'created_at'), callback_id, 'createdAt'),
        scheduled_date=normalize_date(scheduled_raw) if scheduled_raw is not None else None,
        scheduled_time=_clean_str(first_present(raw, 'scheduledTime', 'scheduled_time', 'callback_time')),
        notes=_clean_str(first_present(raw, 'notes', 'callback_notes')),
    )


def normalize_data_entry(raw: Dict[str, Any]) -> DataCenterEntry:
    """Map a raw /api/data-center row onto DataCenterEntry."""
    entry_id = _clean_str(first_present(raw, 'id', 'data_id', default=""))

    feedback_count = first_present(raw, 'feedback_count', 'feedbackCount', default=0)
    try:
        feedback_count = int(feedback_count)
    except (TypeError, ValueError):
        feedback_count = 0

    return DataCenterEntry(
        id=entry_id,
        title=_clean_str(first_present(raw, 'title')),
        description=_clean_str(first_present(raw, 'description')),
        content=_clean_str(first_present(raw, 'content')),
        data_type=_lower_choice(first_present(raw, 'data_type', 'dataType'), 'general'),
        priority=_lower_choice(first_present(raw, 'priority'), 'medium'),
        sent_to_team=_clean_str(first_present(raw, 'sent_to_team', 'sentToTeam')),
        sent_to_id=_clean_str(first_present(raw, 'sent_to_id', 'sentToId')),
        sent_to_name=_clean_str(first_present(raw, 'sent_to_name', 'sentToName')),
        sent_by_id=_clean_str(first_present(raw, 'sent_by_id', 'sentById')),
        sent_by_name=_clean_str(first_present(raw, 'sent_by_name', 'sentByName')),
        status=_lower_choice(first_present(raw, 'status'), 'active'),
        created_at=_date_field(raw, ('created_at', 'createdAt'), entry_id, 'created_at'),
        feedback_count=feedback_count,
    )


def normalize_feedback(raw: Dict[str, Any]) -> Feedback:
    """Map a raw /api/data-feedback row onto Feedback."""
    feedback_id = _clean_str(first_present(raw, 'id', 'feedback_id', default=""))

    rating = first_present(raw, 'rating')
    try:
        rating = int(float(rating)) if rating is not None else None
    except (TypeError, ValueError):
        logger.warning(f"Invalid rating {rating!r} on feedback {feedback_id}")
        rating = None

    return Feedback(
        id=feedback_id,
        data_id=_clean_str(first_present(raw, 'data_id', 'dataId')),
        user_id=_clean_str(first_present(raw, 'user_id', 'userId')),
        user_name=_clean_str(first_present(raw, 'user_name', 'userName', 'user_username')),
        user_role=_clean_str(first_present(raw, 'user_role', 'userRole')),
        feedback_text=_clean_str(first_present(raw, 'feedback_text', 'feedbackText')),
        rating=rating,
        feedback_type=_lower_choice(first_present(raw, 'feedback_type', 'feedbackType'), 'general'),
        status=_lower_choice(first_present(raw, 'status'), 'pending'),
        created_at=_date_field(raw, ('created_at', 'createdAt'), feedback_id, 'created_at'),
        data_title=_clean_str(first_present(raw, 'data_title', 'dataTitle')),
    )


def normalize_identity(raw: Dict[str, Any]) -> Identity:
    """Map an /api/auth user payload onto Identity."""
    return Identity(
        id=_clean_str(first_present(raw, 'id', 'userId', 'user_id')),
        name=_clean_str(first_present(raw, 'name', 'full_name', 'username')),
        role=_lower_choice(first_present(raw, 'role'), ''),
        team=_clean_str(first_present(raw, 'team', 'team_name', 'salesTeam', 'sales_team')),
        managed_team=_clean_str(first_present(raw, 'managedTeam', 'managed_team')),
    )


def normalize_many(rows: Any, normalizer) -> List[Any]:
    """Apply a normalizer to a list payload, skipping non-dict rows."""
    if not isinstance(rows, list):
        return []

    records = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning(f"Skipping non-object row: {row!r}")
            continue
        records.append(normalizer(row))
    return records


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def format_date(value: Any, format_str: str = "%Y-%m-%d") -> str:
    """Format a normalized date for display ('-' when absent)."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.strftime(format_str)
    return str(value)


def format_currency(value: Any) -> str:
    number = parse_money(value)
    if number is None:
        return "-"
    return f"${number:,.2f}"


__all__ = [
    'AMOUNT_KEYS',
    'first_present',
    'parse_money',
    'normalize_amount',
    'normalize_date',
    'normalize_deal',
    'normalize_callback',
    'normalize_data_entry',
    'normalize_feedback',
    'normalize_identity',
    'normalize_many',
    'format_date',
    'format_currency',
]
