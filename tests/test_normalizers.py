# tests/test_normalizers.py
from datetime import date, datetime, timezone

import pandas as pd
import pytest

from crm.dashboard.constants import INVALID_DATE
from crm.dashboard.normalizers import (
    first_present,
    format_currency,
    format_date,
    normalize_amount,
    normalize_callback,
    normalize_data_entry,
    normalize_date,
    normalize_deal,
    normalize_feedback,
    normalize_identity,
    normalize_many,
    parse_money,
)


# ==================== Money ====================

@pytest.mark.parametrize("value, expected", [
    (1200, 1200.0),
    ("1200.50", 1200.5),
    ("$1,200.50", 1200.5),
    (" 42 ", 42.0),
    ("", None),
    ("abc", None),
    (None, None),
    (True, None),
    (float('nan'), None),
    (float('inf'), None),
])
def test_parse_money(value, expected):
    assert parse_money(value) == expected


def test_amount_precedence_prefers_amount_paid():
    raw = {'amount_paid': "300", 'amountPaid': 200, 'amount': 100}
    assert normalize_amount(raw) == 300.0


def test_amount_falls_through_unparseable_keys():
    raw = {'amount_paid': "n/a", 'amountPaid': None, 'amount': "75.25"}
    assert normalize_amount(raw) == 75.25


def test_amount_missing_or_negative_is_zero():
    assert normalize_amount({}) == 0.0
    assert normalize_amount({'amount': -50}) == 0.0


# ==================== Dates ====================

def test_iso_with_offset_is_converted_to_naive_utc():
    assert normalize_date("2026-03-12T10:00:00+02:00") == datetime(2026, 3, 12, 8, 0)


def test_iso_with_z_suffix():
    assert normalize_date("2026-03-12T10:00:00Z") == datetime(2026, 3, 12, 10, 0)


@pytest.mark.parametrize("text, expected", [
    ("2024-01-15T10:30:00.12Z", datetime(2024, 1, 15, 10, 30, 0, 120000)),
    ("2024-01-15T10:30:00.123+05:30", datetime(2024, 1, 15, 5, 0, 0, 123000)),
    ("2024-01-15 10:30:00", datetime(2024, 1, 15, 10, 30)),
])
def test_iso_variants_with_fractional_seconds_and_space(text, expected):
    assert normalize_date(text) == expected


@pytest.mark.parametrize("text", ["now", "today", "15/01/2024", "2024-13-45"])
def test_non_iso_words_are_not_dates(text):
    assert normalize_date(text) == INVALID_DATE


def test_plain_date_string():
    assert normalize_date("2026-03-12") == datetime(2026, 3, 12)


def test_epoch_seconds_and_milliseconds_agree():
    seconds = 1773309600  # 2026-03-12T10:00:00Z
    expected = datetime(2026, 3, 12, 10, 0)
    assert normalize_date(seconds) == expected
    assert normalize_date(seconds * 1000) == expected
    assert normalize_date(str(seconds)) == expected


def test_firestore_timestamp_dict():
    assert normalize_date({'seconds': 1773309600, 'nanoseconds': 0}) == datetime(2026, 3, 12, 10, 0)


def test_date_and_timestamp_objects():
    assert normalize_date(date(2026, 3, 12)) == datetime(2026, 3, 12)
    aware = datetime(2026, 3, 12, 10, 0, tzinfo=timezone.utc)
    assert normalize_date(aware) == datetime(2026, 3, 12, 10, 0)
    assert normalize_date(pd.Timestamp("2026-03-12 10:00")) == datetime(2026, 3, 12, 10, 0)


@pytest.mark.parametrize("value", [None, "", "not a date", "0000-00-00 00:00:00", pd.NaT, float('nan'), [1, 2]])
def test_unparseable_dates_become_marker(value):
    assert normalize_date(value) == INVALID_DATE


# ==================== Records ====================

def test_normalize_deal_reads_legacy_field_names():
    deal = normalize_deal({
        'DealID': "D-9",
        'customer_name': "  Acme  ",
        'amountPaid': "$2,500",
        'SalesAgentID': 7,
        'sales_agent': "Sam",
        'ClosingAgentID': "c2",
        'sales_team': "Alpha",
        'type_service': "Gold",
        'status': "Completed",
        'signup_date': "2026-03-01",
    })

    assert deal.deal_id == "D-9"
    assert deal.customer_name == "Acme"
    assert deal.amount == 2500.0
    assert deal.sales_agent_id == "7"
    assert deal.sales_agent_name == "Sam"
    assert deal.closing_agent_id == "c2"
    assert deal.team == "Alpha"
    assert deal.service_tier == "Gold"
    assert deal.status == "completed"
    assert deal.created_at == datetime(2026, 3, 1)


def test_normalize_deal_camel_case_and_defaults():
    deal = normalize_deal({'dealId': "D-1", 'salesAgentId': "s1", 'createdAt': "garbage"})

    assert deal.amount == 0.0
    assert deal.status == "active"
    assert deal.created_at == INVALID_DATE


def test_normalize_callback_status_aliases():
    callback = normalize_callback({
        'id': "C-1",
        'customerName': "Acme",
        'phone': "555",
        'callback_status': "Contacted",
        'callback_notes': "call after 5",
        'callback_date': "2026-03-20",
    })

    assert callback.callback_id == "C-1"
    assert callback.status == "contacted"
    assert callback.notes == "call after 5"
    assert callback.scheduled_date == datetime(2026, 3, 20)
    assert callback.priority == "medium"


def test_normalize_data_entry_and_feedback():
    entry = normalize_data_entry({'id': 5, 'title': "Q1 targets", 'data_type': "Announcement",
                                  'sent_to_team': "Alpha", 'feedback_count': "3"})
    assert entry.id == "5"
    assert entry.data_type == "announcement"
    assert entry.feedback_count == 3
    assert entry.audience == "Team: Alpha"

    feedback = normalize_feedback({'id': "f1", 'data_id': "5", 'user_id': "s1", 'rating': "4",
                                   'feedback_text': "Clear"})
    assert feedback.rating == 4
    assert feedback.status == "pending"

    assert normalize_feedback({'id': "f2", 'rating': "great"}).rating is None


def test_normalize_identity():
    identity = normalize_identity({'id': 3, 'username': "tl", 'role': "Team Leader", 'team_name': "Alpha",
                                   'managedTeam': "Alpha"})
    assert identity.id == "3"
    assert identity.role == "team_leader"
    assert identity.team == "Alpha"
    assert identity.managed_team == "Alpha"


def test_normalize_many_skips_bad_rows():
    assert normalize_many(None, normalize_deal) == []
    records = normalize_many([{'dealId': "a"}, "junk", 3, {'dealId': "b"}], normalize_deal)
    assert [d.deal_id for d in records] == ["a", "b"]


# ==================== Helpers ====================

def test_first_present_skips_blank_values():
    raw = {'a': None, 'b': "  ", 'c': 0}
    assert first_present(raw, 'a', 'b', 'c') == 0
    assert first_present(raw, 'x', default="d") == "d"


def test_display_helpers():
    assert format_date(datetime(2026, 3, 12, 8, 0)) == "2026-03-12"
    assert format_date(INVALID_DATE) == INVALID_DATE
    assert format_date(None) == "-"
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency("junk") == "-"
