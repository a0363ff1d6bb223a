# tests/test_validators.py
import pytest

from crm.dashboard.validators import RecordValidator


@pytest.fixture
def validator():
    return RecordValidator()


def _deal(**overrides):
    data = {'customer_name': "Acme", 'amount': "1200", 'sales_agent_id': "s1", 'status': "active"}
    data.update(overrides)
    return data


def _callback(**overrides):
    data = {'customer_name': "Acme", 'phone_number': "+1 (555) 123-4567", 'priority': "high"}
    data.update(overrides)
    return data


def _entry(**overrides):
    data = {'title': "Q2 plan", 'description': "Targets", 'data_type': "announcement", 'sent_to_team': "Alpha"}
    data.update(overrides)
    return data


class TestDeals:

    def test_valid_deal(self, validator):
        assert validator.validate_deal(_deal(), 'salesman') == []

    def test_required_fields(self, validator):
        errors = validator.validate_deal({}, 'manager')
        assert "Customer name is required" in errors
        assert "Sales agent is required" in errors
        assert "Amount must be a number" in errors

    def test_amount_rules(self, validator):
        assert validator.validate_deal(_deal(amount="abc"), 'manager') == ["Amount must be a number"]
        assert validator.validate_deal(_deal(amount=-1), 'manager') == ["Amount cannot be negative"]

    def test_status_and_email(self, validator):
        errors = validator.validate_deal(_deal(status="won", email="nope"), 'manager')
        assert len(errors) == 2

    def test_partial_update_checks_only_given_fields(self, validator):
        assert validator.validate_deal({'status': "completed"}, 'salesman', partial=True) == []
        assert validator.validate_deal({'customer_name': " "}, 'salesman', partial=True) == [
            "Customer name is required"
        ]

    def test_permission_checked_first(self, validator):
        errors = validator.validate_deal({}, 'guest')
        assert len(errors) == 1
        assert "not allowed" in errors[0]


class TestCallbacks:

    def test_valid_callback(self, validator):
        assert validator.validate_callback(_callback(), 'salesman') == []

    @pytest.mark.parametrize("phone", ["", "call me", "555-abc"])
    def test_bad_phone(self, validator, phone):
        assert validator.validate_callback(_callback(phone_number=phone), 'salesman')

    def test_bad_priority(self, validator):
        errors = validator.validate_callback(_callback(priority="asap"), 'salesman')
        assert errors and "priority" in errors[0]


class TestDataEntries:

    def test_managers_only(self, validator):
        assert validator.validate_data_entry(_entry(), 'manager') == []
        assert "not allowed" in validator.validate_data_entry(_entry(), 'team_leader')[0]
        assert "not allowed" in validator.validate_data_entry(_entry(), 'salesman')[0]

    def test_audience_is_team_or_person(self, validator):
        both = validator.validate_data_entry(_entry(sent_to_id="s1"), 'manager')
        neither = validator.validate_data_entry(_entry(sent_to_team=""), 'manager')

        assert both == ["Send to a team or to one person, not both"]
        assert neither == ["Choose a team or a person to send to"]

    def test_content_length(self, validator):
        errors = validator.validate_data_entry(_entry(content="x" * 5001), 'manager')
        assert errors == ["Content must be at most 5000 characters"]


class TestFeedback:

    @pytest.mark.parametrize("rating", [1, 5, "3", 4.0])
    def test_valid_ratings(self, validator, rating):
        assert validator.validate_feedback({'feedback_text': "ok", 'rating': rating}, 'salesman') == []

    @pytest.mark.parametrize("rating", [0, 6, 2.5, "five"])
    def test_invalid_ratings(self, validator, rating):
        assert validator.validate_feedback({'feedback_text': "ok", 'rating': rating}, 'salesman')

    def test_text_required(self, validator):
        assert validator.validate_feedback({'feedback_text': "  "}, 'salesman') == ["Feedback text is required"]

    def test_owner_check(self, validator):
        assert validator.validate_feedback_owner("s1", "s1", 'salesman') == []
        assert validator.validate_feedback_owner("s2", "s1", 'salesman')
        assert validator.validate_feedback_owner("s2", "m1", 'manager') == []


def test_entry_status_on_update(validator):
    assert validator.validate_data_entry({'status': "archived"}, 'manager', partial=True) == []
    assert validator.validate_data_entry({'status': "hidden"}, 'manager', partial=True)
