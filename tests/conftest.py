# tests/conftest.py
"""Shared fixtures: identities and small deal / callback sets."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from crm.dashboard.constants import INVALID_DATE
from crm.dashboard.models import Callback, Deal, Identity

NOW = datetime(2026, 3, 12, 15, 0, 0)  # a Thursday


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def manager():
    return Identity(id="m1", name="Mona Manager", role="manager", team="HQ")


@pytest.fixture
def team_leader():
    return Identity(id="t1", name="Tom Leader", role="team_leader", team="Alpha", managed_team="Alpha")


@pytest.fixture
def salesman():
    return Identity(id="s1", name="Sam Seller", role="salesman", team="Alpha")


@pytest.fixture
def deals():
    return [
        Deal(deal_id="D1", customer_name="Acme", amount=1000.0, sales_agent_id="s1", sales_agent_name="Sam Seller",
             team="Alpha", service_tier="Gold", status="active", created_at=datetime(2026, 3, 12, 9, 0)),
        Deal(deal_id="D2", customer_name="Globex", amount=250.5, sales_agent_id="s2", sales_agent_name="Sue Seller",
             closing_agent_id="s1", closing_agent_name="Sam Seller", team="Beta", service_tier="Silver",
             status="completed", created_at=datetime(2026, 3, 10, 18, 30)),
        Deal(deal_id="D3", customer_name="Initech", amount=400.0, sales_agent_id="s3", sales_agent_name="Stan Seller",
             team="Alpha", service_tier="Gold", status="pending", created_at=datetime(2026, 2, 1, 12, 0)),
        Deal(deal_id="D4", customer_name="Umbrella", amount=0.0, sales_agent_id="s4", sales_agent_name="Sid Seller",
             team="Gamma", service_tier="", status="cancelled", created_at=INVALID_DATE),
    ]


@pytest.fixture
def callbacks():
    return [
        Callback(callback_id="C1", customer_name="Acme", phone_number="555-0101", sales_agent_id="s1",
                 sales_agent_name="Sam Seller", team="Alpha", status="pending", created_at=datetime(2026, 3, 11, 10, 0)),
        Callback(callback_id="C2", customer_name="Globex", phone_number="555-0102", sales_agent_id="s1",
                 sales_agent_name="Sam Seller", team="Alpha", status="completed",
                 created_at=datetime(2026, 3, 11, 14, 0)),
        Callback(callback_id="C3", customer_name="Initech", phone_number="555-0103", sales_agent_id="s2",
                 sales_agent_name="Sue Seller", team="Beta", status="contacted",
                 created_at=datetime(2026, 3, 12, 8, 0)),
        Callback(callback_id="C4", customer_name="Hooli", phone_number="555-0104", sales_agent_id="s3",
                 sales_agent_name="Stan Seller", team="Alpha", status="completed",
                 created_at=datetime(2026, 3, 12, 9, 0)),
    ]


@pytest.fixture
def api():
    """Stand-in for CRMApiClient; every verb returns a success envelope."""
    client = MagicMock()
    client.get.return_value = {'success': True}
    client.post.return_value = {'success': True}
    client.put.return_value = {'success': True}
    client.delete.return_value = {'success': True}
    return client
