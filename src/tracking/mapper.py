# src/tracking/mapper.py
# Fills application-owned event fields (userName, emailAddress, ...) from
# request context values, described by dotted paths:
#
#   {"from": "session.user", "fields": {"userName": "username", "emailAddress": "email"}}
#
# reads context["session"]["user"]["username"] into userName, and so on.

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from logger import get_logger

logger = get_logger(__name__)

Populator = Callable[[Any], Dict[str, Any]]


def path_to_list(value: str) -> List[str]:
    """
    Split a dotted property path.

    Raises:
        TypeError: If the path is not a string
    """
    if not isinstance(value, str):
        raise TypeError("path must be a string")
    return value.split(".")


def pick_value(source: Any, keys: List[str]) -> Any:
    """
    Walk a property path through mappings and objects.

    Returns:
        The value at the end of the path, or None if any step is missing
    """
    current = source
    for key in keys:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
    return current


def populate_mapped_fields(mapper: Optional[Mapping[str, Any]]) -> Populator:
    """
    Compile a mapper description into a function context -> {field: value}.

    A malformed description is logged and yields a function that maps nothing.

    Args:
        mapper: {"from": <dotted path>, "fields": {<event field>: <dotted path>}}

    Returns:
        Callable taking the request context and returning the mapped values
    """
    try:
        from_path = path_to_list(mapper["from"])
        field_paths = {field: path_to_list(path) for field, path in mapper["fields"].items()}
    except (KeyError, TypeError, AttributeError) as e:
        logger.debug(f"Can't populate mapping fields: {e}")
        return lambda context: {}

    def populate(context: Any) -> Dict[str, Any]:
        data = pick_value(context, from_path)
        if data is None:
            return {}
        return {field: pick_value(data, path) for field, path in field_paths.items()}

    return populate
