# crm/dashboard/services.py
"""
Write operations for deals, callbacks, data center entries and feedback.

Every method returns (success, message). Validation, permission and
workflow errors return False before any network call is made; backend
failures are logged and reported with a generic retry message.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from crm.api_client import APIError, CRMApiClient, get_api_client
from .access_control import AccessControl
from .constants import ROLE_SALESMAN
from .models import Callback, Feedback, Identity
from .normalizers import parse_money
from .validators import RecordValidator
from .workflow import InvalidTransitionError, transition

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Could not reach the server. Please try again."


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4()}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace('+00:00', 'Z')


class CRMService:
    """
    Usage:
        service = CRMService(get_api_client(), identity)

        ok, message = service.create_deal({...})
        if ok:
            st.toast(message)
        else:
            st.error(message)
    """

    def __init__(self, api: Optional[CRMApiClient], identity: Identity):
        self._api = api
        self.identity = identity
        self.role = (identity.role or '').lower()
        self.access = AccessControl(identity)
        self.validator = RecordValidator()

    @property
    def api(self) -> CRMApiClient:
        if self._api is None:
            self._api = get_api_client()
        return self._api

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _send(self, method: str, endpoint: str, action: str, success_message: str,
              json: Dict = None, params: Dict = None) -> Tuple[bool, str]:
        try:
            if method == 'post':
                self.api.post(endpoint, json=json, params=params)
            elif method == 'put':
                self.api.put(endpoint, json=json, params=params)
            else:
                self.api.delete(endpoint, params=params)
        except APIError as e:
            logger.error(f"❌ {action} failed for user {self.identity.id}: {e}")
            return False, RETRY_MESSAGE

        logger.info(f"✅ {action} by {self.role}:{self.identity.id}")
        return True, success_message

    @staticmethod
    def _errors(errors) -> Tuple[bool, str]:
        return False, "; ".join(errors)

    def _stamp_owner(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Salesmen always create records under their own name and team."""
        if self.role != ROLE_SALESMAN:
            return data
        stamped = dict(data)
        stamped['sales_agent_id'] = self.identity.id
        stamped['sales_agent_name'] = self.identity.name
        stamped['team'] = self.identity.team
        return stamped

    # =========================================================================
    # DEALS
    # =========================================================================

    def create_deal(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        data = self._stamp_owner(data)
        errors = self.validator.validate_deal(data, self.role)
        if errors:
            return self._errors(errors)

        deal_id = data.get('deal_id') or new_id('DEAL-')
        payload = {
            'DealID': deal_id,
            'customer_name': str(data['customer_name']).strip(),
            'amount_paid': parse_money(data['amount']),
            'SalesAgentID': data['sales_agent_id'],
            'sales_agent': data.get('sales_agent_name', ''),
            'ClosingAgentID': data.get('closing_agent_id', ''),
            'closing_agent': data.get('closing_agent_name', ''),
            'sales_team': data.get('team', ''),
            'service_tier': data.get('service_tier', ''),
            'status': (data.get('status') or 'active').lower(),
            'email': data.get('email', ''),
            'phone_number': data.get('phone_number', ''),
            'signup_date': data.get('created_at') or _now_iso(),
        }
        return self._send('post', '/api/sales', "Create deal", f"Deal {deal_id} created", json=payload)

    def update_deal(self, deal_id: str, updates: Dict[str, Any], record: Any = None) -> Tuple[bool, str]:
        if not deal_id:
            return False, "Deal ID is required"
        if record is not None and not self.access.can_edit(record):
            return False, self.access.get_denied_message("edit this deal")

        errors = self.validator.validate_deal(updates, self.role, partial=True)
        if errors:
            return self._errors(errors)

        payload = {'id': deal_id, **updates}
        return self._send('put', '/api/deals', "Update deal", "Deal updated", json=payload)

    def delete_deal(self, deal_id: str, record: Any = None) -> Tuple[bool, str]:
        if not deal_id:
            return False, "Deal ID is required"
        if not self.validator.check_permission(self.role, 'delete_deal'):
            return False, self.validator.get_permission_error_message(self.role, 'delete_deal')
        if record is not None and not self.access.can_delete(record):
            return False, self.access.get_denied_message("delete this deal")

        return self._send('delete', '/api/deals', "Delete deal", "Deal deleted", params={'id': deal_id})

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def create_callback(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        data = dict(self._stamp_owner(data))
        data.setdefault('status', 'pending')
        errors = self.validator.validate_callback(data, self.role)
        if errors:
            return self._errors(errors)

        callback_id = data.get('callback_id') or new_id('CB-')
        agent_id = str(data.get('sales_agent_id') or self.identity.id)
        # Caller's name/team only describe the callback when the caller owns it
        is_own = agent_id == str(self.identity.id)
        payload = {
            'id': callback_id,
            'customer_name': str(data['customer_name']).strip(),
            'phone_number': str(data['phone_number']).strip(),
            'email': data.get('email', ''),
            'SalesAgentID': agent_id,
            'sales_agent': data.get('sales_agent_name') or (self.identity.name if is_own else ''),
            'sales_team': data.get('team') or (self.identity.team if is_own else ''),
            'callback_status': data['status'].lower(),
            'priority': (data.get('priority') or 'medium').lower(),
            'scheduled_date': data.get('scheduled_date'),
            'scheduled_time': data.get('scheduled_time', ''),
            'callback_notes': data.get('notes', ''),
            'created_at': _now_iso(),
        }
        return self._send('post', '/api/callbacks', "Create callback",
                          f"Callback scheduled for {payload['customer_name']}", json=payload)

    def update_callback(self, callback_id: str, updates: Dict[str, Any], record: Any = None) -> Tuple[bool, str]:
        if not callback_id:
            return False, "Callback ID is required"
        if record is not None and not self.access.can_edit(record):
            return False, self.access.get_denied_message("edit this callback")

        if 'status' in updates:
            if record is None:
                return False, "Use update_callback_status to change a callback's status"
            return self.update_callback_status(record, updates['status'], extra={
                k: v for k, v in updates.items() if k != 'status'
            })

        errors = self.validator.validate_callback(updates, self.role, partial=True)
        if errors:
            return self._errors(errors)

        payload = {'id': callback_id, **updates}
        return self._send('put', '/api/callbacks', "Update callback", "Callback updated", json=payload)

    def update_callback_status(self, callback: Callback, new_status: str,
                               extra: Dict[str, Any] = None) -> Tuple[bool, str]:
        """Move a callback along the workflow (pending -> contacted -> completed)."""
        if not self.access.can_edit(callback):
            return False, self.access.get_denied_message("update this callback")

        try:
            updated = transition(callback, new_status)
        except InvalidTransitionError as e:
            return False, str(e)

        if updated is callback:
            return True, f"Callback already {callback.status}"

        extra = extra or {}
        errors = self.validator.validate_callback(extra, self.role, partial=True) if extra else []
        if errors:
            return self._errors(errors)

        payload = {'id': callback.callback_id, 'callback_status': updated.status, **extra}
        return self._send('put', '/api/callbacks', "Update callback status",
                          f"Callback marked {updated.status}", json=payload)

    def delete_callback(self, callback_id: str, record: Any = None) -> Tuple[bool, str]:
        if not callback_id:
            return False, "Callback ID is required"
        if record is not None and not self.access.can_delete(record):
            return False, self.access.get_denied_message("delete this callback")

        return self._send('delete', '/api/callbacks', "Delete callback", "Callback deleted",
                          params={'id': callback_id})

    # =========================================================================
    # DATA CENTER
    # =========================================================================

    def _data_center_params(self, **extra) -> Dict[str, Any]:
        params = {'user_id': self.identity.id, 'user_role': self.role}
        params.update(extra)
        return params

    def create_data_entry(self, data: Dict[str, Any]) -> Tuple[bool, str]:
        errors = self.validator.validate_data_entry(data, self.role)
        if errors:
            return self._errors(errors)

        entry_id = new_id()
        payload = {
            'id': entry_id,
            'title': str(data['title']).strip(),
            'description': str(data['description']).strip(),
            'content': data.get('content', ''),
            'data_type': (data.get('data_type') or 'general').lower(),
            'priority': (data.get('priority') or 'medium').lower(),
            'sent_to_team': data.get('sent_to_team') or None,
            'sent_to_id': data.get('sent_to_id') or None,
            'sent_by_id': self.identity.id,
            'sent_by_name': self.identity.name,
            'status': 'active',
        }
        return self._send('post', '/api/data-center', "Create data entry",
                          f"'{payload['title']}' sent", json=payload, params=self._data_center_params())

    def update_data_entry(self, entry_id: str, updates: Dict[str, Any]) -> Tuple[bool, str]:
        if not entry_id:
            return False, "Entry ID is required"
        errors = self.validator.validate_data_entry(updates, self.role, partial=True)
        if errors:
            return self._errors(errors)

        return self._send('put', '/api/data-center', "Update data entry", "Entry updated",
                          json={'id': entry_id, **updates},
                          params=self._data_center_params(data_id=entry_id))

    def delete_data_entry(self, entry_id: str) -> Tuple[bool, str]:
        if not entry_id:
            return False, "Entry ID is required"
        if not self.validator.check_permission(self.role, 'delete_data_entry'):
            return False, self.validator.get_permission_error_message(self.role, 'delete_data_entry')

        return self._send('delete', '/api/data-center', "Delete data entry", "Entry deleted",
                          params=self._data_center_params(data_id=entry_id))

    # =========================================================================
    # FEEDBACK
    # =========================================================================

    def submit_feedback(self, data_id: str, data: Dict[str, Any]) -> Tuple[bool, str]:
        if not data_id:
            return False, "Entry ID is required"
        errors = self.validator.validate_feedback(data, self.role)
        if errors:
            return self._errors(errors)

        rating = data.get('rating')
        payload = {
            'id': new_id(),
            'data_id': data_id,
            'user_id': self.identity.id,
            'user_name': self.identity.name,
            'user_role': self.role,
            'feedback_text': str(data['feedback_text']).strip(),
            'rating': int(float(rating)) if rating not in (None, '') else None,
            'feedback_type': (data.get('feedback_type') or 'general').lower(),
            'status': 'pending',
        }
        return self._send('post', '/api/data-feedback', "Submit feedback", "Feedback submitted",
                          json=payload, params=self._data_center_params(data_id=data_id))

    def update_feedback(self, feedback: Feedback, updates: Dict[str, Any]) -> Tuple[bool, str]:
        errors = self.validator.validate_feedback_owner(feedback.user_id, self.identity.id, self.role)
        errors += self.validator.validate_feedback(updates, self.role, partial=True)
        if errors:
            return self._errors(errors)

        return self._send('put', '/api/data-feedback', "Update feedback", "Feedback updated",
                          json={'id': feedback.id, **updates},
                          params=self._data_center_params(feedback_id=feedback.id))

    def update_feedback_status(self, feedback: Feedback, new_status: str) -> Tuple[bool, str]:
        """Manager response to a feedback item (pending -> in_progress -> resolved / closed)."""
        if not self.access.can('can_respond_to_feedback'):
            return False, self.access.get_denied_message("respond to feedback")

        new_status = (new_status or '').lower()
        if new_status == (feedback.status or '').lower():
            return True, f"Feedback already {new_status}"

        return self.update_feedback(feedback, {'status': new_status})

    def delete_feedback(self, feedback: Feedback) -> Tuple[bool, str]:
        errors = self.validator.validate_feedback_owner(feedback.user_id, self.identity.id, self.role)
        if errors:
            return self._errors(errors)

        return self._send('delete', '/api/data-feedback', "Delete feedback", "Feedback deleted",
                          params=self._data_center_params(feedback_id=feedback.id))


__all__ = [
    'CRMService',
    'RETRY_MESSAGE',
    'new_id',
]
