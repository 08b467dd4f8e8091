"""http2curl executor - send a request with curl logging enabled."""

import json
import time
from typing import Any

import requests

from http2curl.interceptor import CurlLoggingOptions, curl_logging_session


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.elapsed_ms: float = 0
        self.error: str | None = None
        self.raw_text: str = ""


def _merge_headers(headers: list[tuple[str, str]]) -> dict[str, str]:
    """Fold repeated headers into one field each, first name spelling wins.

    Cookie values join with "; ", all others with ", ".
    """
    merged: dict[str, str] = {}
    names: dict[str, str] = {}
    for name, value in headers:
        key = names.setdefault(name.lower(), name)
        if key in merged:
            sep = "; " if key.lower() == "cookie" else ", "
            merged[key] = f"{merged[key]}{sep}{value}"
        else:
            merged[key] = value
    return merged


def execute_request(
    method: str,
    url: str,
    headers: list[tuple[str, str]] | None = None,
    body: str | None = None,
    timeout: int = 30,
    options: CurlLoggingOptions | None = None,
) -> RequestResult:
    """Send a request through a curl-logging session.

    The curl command is logged by the session's adapter before the
    request goes out. Transport errors never raise; they are reported
    in the result's error field.
    """
    result = RequestResult()

    try:
        with curl_logging_session(options) as session:
            start = time.monotonic()
            resp = session.request(
                method=method.upper(),
                url=url,
                headers=_merge_headers(headers or []),
                data=body.encode("utf-8") if body else None,
                timeout=timeout,
                allow_redirects=True,
            )
            result.elapsed_ms = (time.monotonic() - start) * 1000

        result.status_code = resp.status_code
        result.headers = dict(resp.headers)
        result.raw_text = resp.text

        try:
            result.body = resp.json()
        except (json.JSONDecodeError, ValueError):
            result.body = resp.text

    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"

    return result
