# crm/dashboard/models.py
"""
Canonical record types for the CRM dashboard.

Every record fetched from the backend is normalized into one of these
dataclasses (see normalizers.py) before any filtering or aggregation.
Date fields hold a naive UTC datetime, or the INVALID_DATE marker when
the source value could not be parsed.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .constants import INVALID_DATE, ROLE_TEAM_LEADER

DateValue = Union[datetime, str]


@dataclass
class Identity:
    """The logged-in user as seen by role filtering."""
    id: str
    name: str = ""
    role: str = ""
    team: str = ""
    managed_team: str = ""

    @property
    def effective_team(self) -> str:
        """Team a team leader reports on (falls back to own team)."""
        if self.role == ROLE_TEAM_LEADER:
            return self.managed_team or self.team
        return self.team


@dataclass
class Deal:
    deal_id: str
    customer_name: str = ""
    amount: float = 0.0
    sales_agent_id: str = ""
    sales_agent_name: str = ""
    closing_agent_id: str = ""
    closing_agent_name: str = ""
    team: str = ""
    service_tier: str = ""
    status: str = "active"
    created_at: DateValue = INVALID_DATE
    email: str = ""
    phone_number: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Callback:
    callback_id: str
    customer_name: str = ""
    phone_number: str = ""
    email: str = ""
    sales_agent_id: str = ""
    sales_agent_name: str = ""
    team: str = ""
    status: str = "pending"
    priority: str = "medium"
    created_at: DateValue = INVALID_DATE
    scheduled_date: Optional[DateValue] = None
    scheduled_time: str = ""
    notes: str = ""

    # Callbacks carry no money; aggregation treats them as zero-valued
    @property
    def amount(self) -> float:
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DataCenterEntry:
    id: str
    title: str = ""
    description: str = ""
    content: str = ""
    data_type: str = "general"
    priority: str = "medium"
    sent_to_team: str = ""
    sent_to_id: str = ""
    sent_to_name: str = ""
    sent_by_id: str = ""
    sent_by_name: str = ""
    status: str = "active"
    created_at: DateValue = INVALID_DATE
    feedback_count: int = 0

    @property
    def audience(self) -> str:
        if self.sent_to_team:
            return f"Team: {self.sent_to_team}"
        if self.sent_to_id:
            return f"User: {self.sent_to_name or self.sent_to_id}"
        return "Everyone"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Feedback:
    id: str
    data_id: str = ""
    user_id: str = ""
    user_name: str = ""
    user_role: str = ""
    feedback_text: str = ""
    rating: Optional[int] = None
    feedback_type: str = "general"
    status: str = "pending"
    created_at: DateValue = INVALID_DATE
    data_title: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FetchResult:
    """
    Outcome of a read call.

    A failed call is an "empty success-shaped" result with success=False;
    callers must check `success` rather than infer it from `records`.
    """
    success: bool
    records: List[Any] = field(default_factory=list)
    total: int = 0
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    token: Optional[int] = None

    @classmethod
    def failed(cls, error: str, token: int = None) -> 'FetchResult':
        return cls(success=False, records=[], total=0, stats={}, error=error, token=token)

    def __len__(self) -> int:
        return len(self.records)


__all__ = [
    'DateValue',
    'Identity',
    'Deal',
    'Callback',
    'DataCenterEntry',
    'Feedback',
    'FetchResult',
]
