# src/events/fields.py
# The closed catalogue of event fields and event types
# Field names are the sensor's wire names, so they stay camelCase.

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Set

from logger import get_logger

logger = get_logger(__name__)

# Always present in the serialized event (empty string when unset)
REQUIRED_FIELDS = ("userName", "ipAddress", "url", "eventTime")

# Derivable from the incoming HTTP request/response
POPULATED_FIELDS = ("userAgent", "browserLanguage", "httpMethod", "httpReferer", "httpCode")

# Only ever supplied explicitly by the application
MAPPED_FIELDS = (
    "pageTitle",
    "fullName",
    "firstName",
    "lastName",
    "emailAddress",
    "phoneNumber",
    "userCreated",
    "eventType",
    "payload",
    "fieldHistory",
)

# Serialization order
ALL_FIELDS = REQUIRED_FIELDS + POPULATED_FIELDS + MAPPED_FIELDS

# Fields holding a list of change entries
LIST_FIELDS = ("payload", "fieldHistory")


class EventType(Enum):
    """Event types accepted by the sensor."""

    PAGE_VIEW = "page_view"
    PAGE_EDIT = "page_edit"
    PAGE_DELETE = "page_delete"
    PAGE_SEARCH = "page_search"
    PAGE_ERROR = "page_error"

    ACCOUNT_LOGIN = "account_login"
    ACCOUNT_LOGOUT = "account_logout"
    ACCOUNT_LOGIN_FAIL = "account_login_fail"
    ACCOUNT_REGISTRATION = "account_registration"
    ACCOUNT_EMAIL_CHANGE = "account_email_change"
    ACCOUNT_PASSWORD_CHANGE = "account_password_change"
    ACCOUNT_EDIT = "account_edit"

    FIELD_EDIT = "field_edit"

    @classmethod
    def is_valid(cls, event_type) -> bool:
        """Check if an event type (member or string) is allowed."""
        if isinstance(event_type, cls):
            return True
        try:
            cls(event_type)
            return True
        except ValueError:
            return False

    @classmethod
    def get_allowed_types(cls) -> Set[str]:
        """Get all allowed event type strings."""
        return {e.value for e in cls}


@dataclass(frozen=True)
class FieldSet:
    """
    The active field set of an event: the only names a builder may assign.

    Built once from configuration and immutable afterwards.
    """

    fields: FrozenSet[str]
    populated: bool = True

    @classmethod
    def resolve(cls, populated: bool = True, fields: Optional[Iterable[str]] = None) -> "FieldSet":
        """
        Build the active field set.

        Args:
            populated: Add the request-derived fields to the required ones
            fields: Extra field names to allow; unknown names are dropped

        Returns:
            A FieldSet
        """
        active = set(REQUIRED_FIELDS)
        if populated:
            active.update(POPULATED_FIELDS)

        for name in fields or ():
            if isinstance(name, str) and name in ALL_FIELDS:
                active.add(name)
            else:
                logger.warning(f"Ignoring unknown event field in configuration: {name!r}")

        return cls(fields=frozenset(active), populated=populated)

    def __contains__(self, name) -> bool:
        return name in self.fields

    def __len__(self) -> int:
        return len(self.fields)

    def ordered(self) -> List[str]:
        """Active field names in serialization order."""
        return [name for name in ALL_FIELDS if name in self.fields]
