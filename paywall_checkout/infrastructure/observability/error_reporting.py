"""Error-reporting sink with scrubbing of credentials before emission"""

import copy
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from paywall_checkout.infrastructure.observability.metrics import reported_errors_counter

SENSITIVE_HEADERS = {"authorization", "cookie"}
SENSITIVE_QUERY_PARAMS = {"token", "api_key"}


def scrub_url(url: str) -> str:
    """Drop token/api_key query parameters from a URL"""
    parts = urlsplit(url)
    query = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if name.lower() not in SENSITIVE_QUERY_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def scrub_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove credentials from an error event before it leaves the process.

    - `authorization` and `cookie` request headers (any case)
    - `token` and `api_key` query parameters of the request URL
    """
    scrubbed = copy.deepcopy(event)
    request = scrubbed.get("request")
    if not isinstance(request, dict):
        return scrubbed

    headers = request.get("headers")
    if isinstance(headers, dict):
        request["headers"] = {
            name: value for name, value in headers.items() if name.lower() not in SENSITIVE_HEADERS
        }

    url = request.get("url")
    if isinstance(url, str) and url:
        request["url"] = scrub_url(url)

    return scrubbed


class ErrorReporter:
    """Reports unexpected errors as scrubbed structured log records"""

    def report_error(self, error: BaseException, context: Dict[str, Any]) -> None:
        try:
            event = scrub_event({"error_type": type(error).__name__, **context})
            reported_errors_counter.inc()
            logging.error(
                f"Unexpected error: {error}",
                exc_info=(type(error), error, error.__traceback__),
                extra={"error_context": event},
            )
        except Exception as e:
            logging.warning(f"Error reporter failed: {e}")
