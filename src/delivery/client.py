# src/delivery/client.py
# Sends serialized events to the sensor over HTTP
# The sensor answers a good POST with "204 No Content"; anything else is a
# failed delivery. Failures are logged and reported as False, never raised.

import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests

from logger import get_logger
from metrics import (
    DELIVERY_FAILURES_TOTAL,
    DELIVERY_LATENCY_SECONDS,
)
from core.errors import ConfigurationError

logger = get_logger(__name__)

SENSOR_PATH = "sensor/"
SUCCESS_STATUS = 204


def normalize_endpoint(base: str) -> str:
    """
    Turn a base URL into the sensor endpoint.

    The path always ends with "/sensor/", the query string and fragment are
    dropped. Normalizing an already normalized URL returns it unchanged.

    Args:
        base: Base sensor URL, e.g. "https://host/api"

    Returns:
        The endpoint, e.g. "https://host/api/sensor/"

    Raises:
        ConfigurationError: If the URL cannot be parsed or lacks scheme/host

    Example:
        normalize_endpoint("https://host?q=1#tag")  # "https://host/sensor/"
    """
    try:
        parts = urlsplit(base)
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigurationError(f"cannot parse url {base!r}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"url must be an absolute http(s) URL, got {base!r}")

    path = parts.path or "/"
    if not path.endswith("/"):
        path = f"{path}/"

    if not path.endswith(f"/{SENSOR_PATH}"):
        logger.debug("Sensor path missing from the configured URL, appending it")
        path = f"{path}{SENSOR_PATH}"

    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def encode_form(data: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Flatten a serialized event into form key/value pairs.

    None values are skipped. Lists and dicts use bracket notation, so a
    payload entry becomes "payload[0][field_id]=...".

    Args:
        data: Serialized event

    Returns:
        List of (key, value) pairs ready for a form-urlencoded body
    """
    pairs: List[Tuple[str, str]] = []

    def walk(key: str, value: Any):
        if value is None:
            return
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                walk(f"{key}[{sub_key}]", sub_value)
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                walk(f"{key}[{index}]", item)
        elif isinstance(value, bool):
            pairs.append((key, "true" if value else "false"))
        else:
            pairs.append((key, str(value)))

    for key, value in data.items():
        walk(key, value)

    return pairs


class DeliveryClient:
    """
    HTTP client for the sensor endpoint.

    One requests.Session is reused for every POST so connections are pooled.

    Example:
        client = DeliveryClient("https://sensor.example.com", "API_KEY")
        client.send(event.serialize())
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        log=None,
    ):
        """
        Args:
            base_url: Base sensor URL; normalized here so bad URLs fail at construction
            api_key: Value of the Api-Key header
            timeout: Seconds to wait for the sensor on each POST
            session: Session to send through (tests pass a fake)
            log: Logger for delivery diagnostics
        """
        self.endpoint = normalize_endpoint(base_url)
        self.timeout = timeout
        self._api_key = api_key
        self._session = session or requests.Session()
        self._logger = log or logger

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/x-www-form-urlencoded",
            "Api-Key": self._api_key,
        }

    def send(self, serialized: Mapping[str, Any]) -> bool:
        """
        POST one serialized event to the sensor.

        Args:
            serialized: Output of EventBuilder.serialize()

        Returns:
            True if the sensor answered 204, False otherwise
        """
        body = encode_form(serialized)
        start = time.time()

        try:
            response = self._session.post(
                self.endpoint,
                data=body,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            DELIVERY_FAILURES_TOTAL.labels(reason="transport").inc()
            self._logger.warning(f"Sensor request failed: {e.__class__.__name__}: {e}")
            return False
        finally:
            DELIVERY_LATENCY_SECONDS.observe(time.time() - start)

        if response.status_code != SUCCESS_STATUS:
            DELIVERY_FAILURES_TOTAL.labels(reason="status").inc()
            self._logger.warning(f"Sensor returned unexpected status {response.status_code}")
            return False

        self._logger.debug(f"Sensor accepted event, status {response.status_code}")
        return True

    def close(self):
        """Close the underlying HTTP session."""
        self._session.close()
