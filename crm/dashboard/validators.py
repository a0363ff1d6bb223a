# crm/dashboard/validators.py
"""
Validation utilities for CRM write operations

Every validate_* method returns a list of error messages (empty if valid).
Validation runs before any network call; a non-empty list means the
request is never sent.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from .constants import (
    CALLBACK_STATUSES,
    DATA_ENTRY_STATUSES,
    DATA_TYPES,
    DEAL_STATUSES,
    FEEDBACK_STATUSES,
    FEEDBACK_TYPES,
    PRIORITIES,
    RATING_RANGE,
    ROLE_MANAGER,
)
from .normalizers import parse_money

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^[0-9+\-\s()]+$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class RecordValidator:
    """Validator for deal / callback / data center / feedback submissions"""

    def __init__(self):
        self.MAX_STRING_LENGTH = 500
        self.MAX_TEXT_LENGTH = 5000

        # Permission matrix by role
        # Actions: create/update/delete per record kind
        self.PERMISSIONS = {
            'manager': [
                'create_deal', 'update_deal', 'delete_deal',
                'create_callback', 'update_callback', 'delete_callback',
                'create_data_entry', 'update_data_entry', 'delete_data_entry',
                'submit_feedback', 'update_feedback', 'delete_feedback',
            ],
            'team_leader': [
                'create_deal', 'update_deal', 'delete_deal',
                'create_callback', 'update_callback', 'delete_callback',
                'submit_feedback', 'update_feedback', 'delete_feedback',
            ],
            'salesman': [
                'create_deal', 'update_deal',
                'create_callback', 'update_callback', 'delete_callback',
                'submit_feedback', 'update_feedback', 'delete_feedback',
            ],
        }

    # ==================== Permissions ====================

    def check_permission(self, user_role: str, action: str) -> bool:
        return action in self.PERMISSIONS.get((user_role or '').lower(), [])

    def get_permission_error_message(self, user_role: str, action: str) -> str:
        readable = action.replace('_', ' ')
        return f"Your role ({user_role or 'unknown'}) is not allowed to {readable}"

    # ==================== Shared checks ====================

    def _required(self, data: Dict, key: str, label: str, errors: List[str]):
        value = data.get(key)
        if value is None or not str(value).strip():
            errors.append(f"{label} is required")
        elif len(str(value)) > self.MAX_STRING_LENGTH:
            errors.append(f"{label} must be at most {self.MAX_STRING_LENGTH} characters")

    def _choice(self, data: Dict, key: str, label: str, choices: List[str], errors: List[str]):
        value = data.get(key)
        if value in (None, ''):
            return
        if str(value).lower() not in choices:
            errors.append(f"Invalid {label}. Must be one of: {', '.join(choices)}")

    # ==================== Deals ====================

    def validate_deal(self, data: Dict[str, Any], user_role: str, partial: bool = False) -> List[str]:
        errors = []
        action = 'update_deal' if partial else 'create_deal'
        if not self.check_permission(user_role, action):
            return [self.get_permission_error_message(user_role, action)]

        if not partial or 'customer_name' in data:
            self._required(data, 'customer_name', "Customer name", errors)
        if not partial or 'sales_agent_id' in data:
            self._required(data, 'sales_agent_id', "Sales agent", errors)

        if not partial or 'amount' in data:
            amount = parse_money(data.get('amount'))
            if amount is None:
                errors.append("Amount must be a number")
            elif amount < 0:
                errors.append("Amount cannot be negative")

        self._choice(data, 'status', "deal status", DEAL_STATUSES, errors)
        self._check_email(data, errors)
        return errors

    # ==================== Callbacks ====================

    def validate_callback(self, data: Dict[str, Any], user_role: str, partial: bool = False) -> List[str]:
        errors = []
        action = 'update_callback' if partial else 'create_callback'
        if not self.check_permission(user_role, action):
            return [self.get_permission_error_message(user_role, action)]

        if not partial or 'customer_name' in data:
            self._required(data, 'customer_name', "Customer name", errors)

        if not partial or 'phone_number' in data:
            phone = str(data.get('phone_number') or '').strip()
            if not phone:
                errors.append("Phone number is required")
            elif not PHONE_PATTERN.match(phone):
                errors.append("Please provide a valid phone number")

        self._check_email(data, errors)
        self._choice(data, 'priority', "priority", PRIORITIES, errors)
        self._choice(data, 'status', "callback status", CALLBACK_STATUSES, errors)
        return errors

    # ==================== Data center ====================

    def validate_data_entry(self, data: Dict[str, Any], user_role: str, partial: bool = False) -> List[str]:
        errors = []
        action = 'update_data_entry' if partial else 'create_data_entry'
        if not self.check_permission(user_role, action):
            return [self.get_permission_error_message(user_role, action)]

        if not partial or 'title' in data:
            self._required(data, 'title', "Title", errors)
        if not partial or 'description' in data:
            self._required(data, 'description', "Description", errors)

        content = data.get('content') or ''
        if len(str(content)) > self.MAX_TEXT_LENGTH:
            errors.append(f"Content must be at most {self.MAX_TEXT_LENGTH} characters")

        self._choice(data, 'data_type', "data type", DATA_TYPES, errors)
        self._choice(data, 'priority', "priority", PRIORITIES, errors)
        self._choice(data, 'status', "entry status", DATA_ENTRY_STATUSES, errors)

        if not partial:
            to_team = str(data.get('sent_to_team') or '').strip()
            to_id = str(data.get('sent_to_id') or '').strip()
            if to_team and to_id:
                errors.append("Send to a team or to one person, not both")
            elif not to_team and not to_id:
                errors.append("Choose a team or a person to send to")

        return errors

    # ==================== Feedback ====================

    def validate_feedback(self, data: Dict[str, Any], user_role: str, partial: bool = False) -> List[str]:
        errors = []
        action = 'update_feedback' if partial else 'submit_feedback'
        if not self.check_permission(user_role, action):
            return [self.get_permission_error_message(user_role, action)]

        if not partial or 'feedback_text' in data:
            text = str(data.get('feedback_text') or '').strip()
            if not text:
                errors.append("Feedback text is required")
            elif len(text) > self.MAX_TEXT_LENGTH:
                errors.append(f"Feedback must be at most {self.MAX_TEXT_LENGTH} characters")

        rating = data.get('rating')
        if rating not in (None, ''):
            error = self._check_rating(rating)
            if error:
                errors.append(error)

        self._choice(data, 'feedback_type', "feedback type", FEEDBACK_TYPES, errors)
        self._choice(data, 'status', "feedback status", FEEDBACK_STATUSES, errors)
        return errors

    @staticmethod
    def _check_rating(rating: Any) -> Optional[str]:
        low, high = RATING_RANGE
        try:
            value = float(rating)
        except (TypeError, ValueError):
            return "Rating must be a number"
        if not value.is_integer() or not low <= value <= high:
            return f"Rating must be a whole number between {low} and {high}"
        return None

    @staticmethod
    def _check_email(data: Dict, errors: List[str]):
        email = str(data.get('email') or '').strip()
        if email and not EMAIL_PATTERN.match(email):
            errors.append("Please provide a valid email")

    # ==================== Ownership ====================

    def validate_feedback_owner(self, feedback_user_id: str, user_id: str, user_role: str) -> List[str]:
        """Only the author (or a manager) may change a feedback item."""
        if (user_role or '').lower() == ROLE_MANAGER:
            return []
        if str(feedback_user_id) != str(user_id):
            return ["You can only change your own feedback"]
        return []


__all__ = [
    'RecordValidator',
    'PHONE_PATTERN',
    'EMAIL_PATTERN',
]
