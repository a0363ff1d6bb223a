# crm/dashboard/access_control.py
"""
Role-based Access Control for the CRM Dashboard

Handles record visibility and action permissions by role:
- manager: Full access to every deal / callback / data entry
- team_leader: Own records + records of the managed team
- salesman: Own records only (sales agent or closing agent)

These checks drive what the UI shows and enables. They are advisory only;
the backend is responsible for enforcing authorization.
"""

import logging
from typing import Any, Iterable, List, Optional

from .constants import (
    FULL_ACCESS_ROLES,
    TEAM_ACCESS_ROLES,
    SELF_ACCESS_ROLES,
    ROLE_MANAGER,
    ROLE_TEAM_LEADER,
    ROLE_SALESMAN,
)
from .models import Identity

logger = logging.getLogger(__name__)


# =============================================================================
# PURE VISIBILITY RULES
# =============================================================================

def _field(record: Any, name: str) -> str:
    if isinstance(record, dict):
        value = record.get(name)
    else:
        value = getattr(record, name, None)
    return "" if value is None else str(value)


def is_owned_by(record: Any, user_id: str) -> bool:
    """
    True when the user is the sales agent, or the closing agent for records
    that have one (callbacks only carry a sales agent).
    """
    if not user_id:
        return False
    if _field(record, 'sales_agent_id') == user_id:
        return True
    return _field(record, 'closing_agent_id') == user_id


def filter_visible(records: Iterable[Any], role: str, identity: Optional[Identity]) -> List[Any]:
    """
    Restrict records to what the given role/identity may see.

    - manager: everything, unchanged and in input order
    - salesman: records owned by identity.id
    - team_leader: owned records plus records whose team == managed team
    - missing identity id, or unknown role: nothing
    """
    records = list(records)
    role = (role or '').lower()

    if role == ROLE_MANAGER:
        return records

    user_id = str(identity.id).strip() if identity is not None and identity.id is not None else ""
    if not user_id:
        logger.warning(f"No identity id for role '{role}', returning no records")
        return []

    if role == ROLE_SALESMAN:
        return [r for r in records if is_owned_by(r, user_id)]

    if role == ROLE_TEAM_LEADER:
        team = identity.managed_team
        return [
            r for r in records
            if is_owned_by(r, user_id) or (team and _field(r, 'team') == team)
        ]

    logger.warning(f"Unknown role '{role}', returning no records")
    return []


def filter_visible_entries(entries: Iterable[Any], identity: Optional[Identity]) -> List[Any]:
    """
    Data center visibility: managers see everything; others see entries
    addressed to them, to their team, or broadcast to nobody in particular.
    """
    entries = list(entries)
    if identity is None:
        return []
    if identity.role == ROLE_MANAGER:
        return entries
    if not identity.id:
        return []

    teams = {t for t in (identity.team, identity.managed_team) if t}
    visible = []
    for entry in entries:
        to_id = _field(entry, 'sent_to_id')
        to_team = _field(entry, 'sent_to_team')
        if to_id == str(identity.id) or (to_team and to_team in teams) or (not to_id and not to_team):
            visible.append(entry)
    return visible


# =============================================================================
# PERMISSION MATRIX
# =============================================================================

PERMISSIONS = {
    ROLE_MANAGER: {
        'can_export': True,
        'can_create_data_entries': True,
        'can_delete_data_entries': True,
        'can_manage_users': True,
        'can_view_all_performance': True,
        'can_respond_to_feedback': True,
        'can_submit_feedback': True,
    },
    ROLE_TEAM_LEADER: {
        'can_export': False,
        'can_create_data_entries': False,
        'can_delete_data_entries': False,
        'can_manage_users': False,
        'can_view_all_performance': False,
        'can_respond_to_feedback': False,
        'can_submit_feedback': True,
    },
    ROLE_SALESMAN: {
        'can_export': False,
        'can_create_data_entries': False,
        'can_delete_data_entries': False,
        'can_manage_users': False,
        'can_view_all_performance': False,
        'can_respond_to_feedback': False,
        'can_submit_feedback': True,
    },
}


class AccessControl:
    """
    Record visibility and action permissions for one identity.

    Usage:
        access = AccessControl(identity)

        level = access.get_access_level()   # 'full', 'team', or 'self'
        deals = access.filter_records(deals)
        if access.can('can_export'):
            ...
    """

    def __init__(self, identity: Identity):
        self.identity = identity
        self.role = (identity.role or '').lower() if identity else ''

        logger.info(f"AccessControl initialized: role={self.role}, user_id={getattr(identity, 'id', None)}")

    # =========================================================================
    # ACCESS LEVEL DETERMINATION
    # =========================================================================

    def get_access_level(self) -> str:
        """
        Returns:
            'full' - Can view all records
            'team' - Can view own + managed team records
            'self' - Can view own records only
            'none' - Unknown role
        """
        if self.role in FULL_ACCESS_ROLES:
            return 'full'
        elif self.role in TEAM_ACCESS_ROLES:
            return 'team'
        elif self.role in SELF_ACCESS_ROLES:
            return 'self'
        return 'none'

    def can_view_all(self) -> bool:
        return self.get_access_level() == 'full'

    def can(self, permission: str) -> bool:
        """Look up a flag in the role permission matrix (False if unknown)."""
        return PERMISSIONS.get(self.role, {}).get(permission, False)

    # =========================================================================
    # RECORD FILTERING
    # =========================================================================

    def filter_records(self, records: Iterable[Any]) -> List[Any]:
        return filter_visible(records, self.role, self.identity)

    def filter_entries(self, entries: Iterable[Any]) -> List[Any]:
        return filter_visible_entries(entries, self.identity)

    # =========================================================================
    # ROW-LEVEL ACTIONS
    # =========================================================================

    def can_edit(self, record: Any) -> bool:
        """Managers edit anything; others edit records they can see."""
        if self.can_view_all():
            return True
        return bool(self.filter_records([record]))

    def can_delete(self, record: Any) -> bool:
        """Managers delete anything; salesmen and team leaders delete their own."""
        if self.can_view_all():
            return True
        return is_owned_by(record, str(self.identity.id or ''))

    def can_edit_feedback(self, feedback: Any) -> bool:
        if self.can_view_all():
            return True
        return _field(feedback, 'user_id') == str(self.identity.id or '')

    # =========================================================================
    # DISPLAY
    # =========================================================================

    def get_access_label(self) -> str:
        level = self.get_access_level()
        if level == 'full':
            return "🔓 Full Access"
        if level == 'team':
            team = self.identity.effective_team or "no team"
            return f"👥 Team Access ({team})"
        if level == 'self':
            return "👤 Personal Access"
        return "🚫 No Access"

    def get_denied_message(self, action: str = "perform this action") -> str:
        return f"🚫 Your role ({self.role or 'unknown'}) cannot {action}."


__all__ = [
    'AccessControl',
    'PERMISSIONS',
    'filter_visible',
    'filter_visible_entries',
    'is_owned_by',
]
