# src/events/record.py
# EventRecord holds one event's field values; EventBuilder is the only way
# to change them and enforces the active field set and defaulting rules.

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from logger import get_logger
from events.fields import (
    ALL_FIELDS,
    LIST_FIELDS,
    REQUIRED_FIELDS,
    EventType,
    FieldSet,
)

logger = get_logger(__name__)

# Only ever grown through add_field_history_entry(); never replaced or cleared
APPEND_ONLY_FIELDS = ("fieldHistory",)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a moment as the sensor expects: "YYYY-MM-DD HH:MM:SS.mmm" in UTC.

    Args:
        moment: Datetime to format; defaults to now

    Returns:
        Timestamp string, e.g. "2000-01-01 10:30:45.123"
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S.") + f"{moment.microsecond // 1000:03d}"


def _change_entry(
    field_id,
    new_value,
    old_value=None,
    field_name=None,
    parent_id=None,
    parent_name=None,
) -> Dict[str, Any]:
    # optional keys are only present when they carry a value
    entry = {"field_id": field_id, "new_value": new_value}
    optional = (
        ("old_value", old_value),
        ("field_name", field_name),
        ("parent_id", parent_id),
        ("parent_name", parent_name),
    )
    for key, value in optional:
        if value is not None:
            entry[key] = value
    return entry


_ENTRY_KEYS = ("field_id", "new_value", "old_value", "field_name", "parent_id", "parent_name")


def _is_change_entry(entry) -> bool:
    return isinstance(entry, Mapping) and "field_id" in entry and "new_value" in entry


class EventRecord:
    """One tracking event: a correlation ID plus a flat field -> value mapping."""

    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        self.values: Dict[str, Any] = {}

    def __repr__(self):
        return f"EventRecord(correlation_id={self.correlation_id!r}, fields={sorted(self.values)})"


class EventBuilder:
    """
    Validating, fluent editor for an EventRecord.

    Assignments outside the active field set are ignored: set_field() returns
    False and the fluent setters simply return the builder unchanged. Nothing
    here raises on bad input, so tracking never disturbs the host request.

    Example:
        event = tracker.create_event()
        event.set_ip_address("1.1.1.1").set_url("/login").set_event_type_account_login()
    """

    def __init__(self, record: EventRecord, field_set: FieldSet, log=None):
        self._record = record
        self._field_set = field_set
        self._logger = log or logger

    @property
    def correlation_id(self) -> str:
        return self._record.correlation_id

    @property
    def record(self) -> EventRecord:
        return self._record

    @property
    def field_set(self) -> FieldSet:
        return self._field_set

    def get(self, name: str) -> Any:
        """Return the assigned value of a field, or None."""
        return self._record.values.get(name)

    def set_field(self, name: str, value: Any) -> bool:
        """
        Assign one field after validating it against the active field set.

        Args:
            name: Wire name of the field, e.g. "userName"
            value: New value; None clears the field

        Returns:
            True if the assignment was applied, False if it was rejected
        """
        if name not in ALL_FIELDS or name not in self._field_set:
            self._logger.debug(f"Field {name!r} is not in the active field set, ignoring it")
            return False

        if name in APPEND_ONLY_FIELDS:
            self._logger.debug(f"Field {name!r} is append-only, use add_field_history_entry()")
            return False

        values = self._record.values

        if value is None:
            values.pop(name, None)
            return True

        if name == "eventType":
            if not EventType.is_valid(value):
                self._logger.debug(f"Unknown event type {value!r}, keeping {values.get(name)!r}")
                return False
            values[name] = EventType(value).value
            return True

        if name in LIST_FIELDS:
            if not isinstance(value, (list, tuple)) or not all(_is_change_entry(e) for e in value):
                self._logger.debug(f"Field {name!r} expects a list of change entries")
                return False
            values[name] = [
                _change_entry(**{key: entry.get(key) for key in _ENTRY_KEYS})
                for entry in value
            ]
            return True

        if name == "ipAddress" and values.get("userName") is None:
            # userName falls back to the IP until the application sets one
            values["userName"] = value

        values[name] = value
        return True

    def _append(self, name: str, entry: Dict[str, Any]) -> "EventBuilder":
        if name not in self._field_set:
            self._logger.debug(f"Field {name!r} is not in the active field set, ignoring it")
            return self
        self._record.values.setdefault(name, []).append(entry)
        return self

    # Required fields

    def set_user_name(self, value) -> "EventBuilder":
        self.set_field("userName", value)
        return self

    def set_ip_address(self, value) -> "EventBuilder":
        self.set_field("ipAddress", value)
        return self

    def set_url(self, value) -> "EventBuilder":
        self.set_field("url", value)
        return self

    def set_event_time(self, value) -> "EventBuilder":
        self.set_field("eventTime", value)
        return self

    def set_event_time_now(self) -> "EventBuilder":
        self.set_field("eventTime", utc_timestamp())
        return self

    # Request-derived fields

    def set_user_agent(self, value) -> "EventBuilder":
        self.set_field("userAgent", value)
        return self

    def set_browser_language(self, value) -> "EventBuilder":
        self.set_field("browserLanguage", value)
        return self

    def set_http_method(self, value) -> "EventBuilder":
        self.set_field("httpMethod", value)
        return self

    def set_http_referer(self, value) -> "EventBuilder":
        self.set_field("httpReferer", value)
        return self

    def set_http_code(self, value) -> "EventBuilder":
        self.set_field("httpCode", value)
        return self

    # Application-supplied fields

    def set_page_title(self, value) -> "EventBuilder":
        self.set_field("pageTitle", value)
        return self

    def set_full_name(self, value) -> "EventBuilder":
        self.set_field("fullName", value)
        return self

    def set_first_name(self, value) -> "EventBuilder":
        self.set_field("firstName", value)
        return self

    def set_last_name(self, value) -> "EventBuilder":
        self.set_field("lastName", value)
        return self

    def set_email_address(self, value) -> "EventBuilder":
        self.set_field("emailAddress", value)
        return self

    def set_phone_number(self, value) -> "EventBuilder":
        self.set_field("phoneNumber", value)
        return self

    def set_user_created(self, value) -> "EventBuilder":
        self.set_field("userCreated", value)
        return self

    def set_payload(self, entries: List[Mapping[str, Any]]) -> "EventBuilder":
        self.set_field("payload", entries)
        return self

    def add_payload_entry(
        self,
        field_id,
        new_value,
        old_value=None,
        field_name=None,
        parent_id=None,
        parent_name=None,
    ) -> "EventBuilder":
        """Append one changed-field entry to the payload list."""
        return self._append(
            "payload",
            _change_entry(field_id, new_value, old_value, field_name, parent_id, parent_name),
        )

    def add_field_history_entry(
        self,
        field_id,
        new_value,
        field_name=None,
        old_value=None,
        parent_id=None,
        parent_name=None,
    ) -> "EventBuilder":
        """Append one entry to the field history; entries are never removed."""
        return self._append(
            "fieldHistory",
            _change_entry(field_id, new_value, old_value, field_name, parent_id, parent_name),
        )

    # Event type

    def set_event_type(self, value) -> "EventBuilder":
        self.set_field("eventType", value)
        return self

    def set_event_type_page_view(self) -> "EventBuilder":
        return self.set_event_type(EventType.PAGE_VIEW)

    def set_event_type_page_edit(self) -> "EventBuilder":
        return self.set_event_type(EventType.PAGE_EDIT)

    def set_event_type_page_delete(self) -> "EventBuilder":
        return self.set_event_type(EventType.PAGE_DELETE)

    def set_event_type_page_search(self) -> "EventBuilder":
        return self.set_event_type(EventType.PAGE_SEARCH)

    def set_event_type_page_error(self) -> "EventBuilder":
        return self.set_event_type(EventType.PAGE_ERROR)

    def set_event_type_account_login(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_LOGIN)

    def set_event_type_account_logout(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_LOGOUT)

    def set_event_type_account_login_fail(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_LOGIN_FAIL)

    def set_event_type_account_registration(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_REGISTRATION)

    def set_event_type_account_email_change(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_EMAIL_CHANGE)

    def set_event_type_account_password_change(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_PASSWORD_CHANGE)

    def set_event_type_account_edit(self) -> "EventBuilder":
        return self.set_event_type(EventType.ACCOUNT_EDIT)

    def set_event_type_field_edit(self) -> "EventBuilder":
        return self.set_event_type(EventType.FIELD_EDIT)

    # Output

    def serialize(self) -> Dict[str, Any]:
        """
        Build the ordered payload sent to the sensor.

        Required fields are always present: unset ones become "" and an unset
        eventTime becomes the current UTC time. Other fields appear only when
        they hold a value; empty lists are left out.

        Returns:
            Ordered dict of wire name -> value
        """
        result: Dict[str, Any] = {}
        missing = []

        for name in self._field_set.ordered():
            value = self._record.values.get(name)

            if name in REQUIRED_FIELDS:
                if value is None:
                    if name == "eventTime":
                        value = utc_timestamp()
                    else:
                        value = ""
                        missing.append(name)
                result[name] = value
                continue

            if value is None:
                continue
            if name in LIST_FIELDS:
                if not value:
                    continue
                value = [dict(entry) for entry in value]
            result[name] = value

        if missing:
            self._logger.debug(f"Required fields were empty (filled with \"\"): {missing}")

        return result

    def is_valid(self) -> bool:
        """
        True when exactly the active fields are assigned: none missing, none extra.

        eventTime counts as assigned because serialize() always supplies it.
        """
        assigned = {name for name, value in self._record.values.items() if value is not None}
        assigned.add("eventTime")
        active = self._field_set.fields

        if len(assigned) != len(active):
            return False
        return not (assigned ^ active)

    def __repr__(self):
        return f"EventBuilder(correlation_id={self.correlation_id!r})"
