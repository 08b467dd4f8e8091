"""http2curl translator - HTTP request to curl command line."""

import logging
import re
from typing import Any
from urllib.parse import urlsplit

from http2curl.core import (
    HttpRequest,
    UnsupportedMethod,
    UnsupportedMultipartBody,
    UnsupportedRequestType,
    content_charset,
    media_type,
    read_body,
    to_http_request,
)
from http2curl.escaping import EscapeMode, detect_mode, escape

log = logging.getLogger(__name__)

# Sent with --data; every other body goes through --data-binary.
NON_BINARY_CONTENT_TYPES = frozenset(
    {
        "application/x-www-form-urlencoded",
        "application/json",
    },
)
MULTIPART_FORM_DATA = "multipart/form-data"

# Runs of "/" collapse everywhere but right after the scheme.
_DOUBLE_SLASH_RE = re.compile(r"(?<!http:)(?<!https:)/{2,}")
# Characters curl's URL globbing would interpret.
_URL_GLOB_RE = re.compile(r"[\[\]{}\\]")
# Methods are printed unquoted after -X.
_METHOD_RE = re.compile(r"[A-Za-z][A-Za-z0-9_.-]*")


def generate_curl(
    request: Any,
    mode: EscapeMode | str | None = None,
    strict_multipart: bool = False,
) -> str:
    """Generate the curl command line reproducing a request."""
    return " ".join(translate(request, mode, strict_multipart=strict_multipart))


def translate(
    request: Any,
    mode: EscapeMode | str | None = None,
    strict_multipart: bool = False,
) -> list[str]:
    """Translate a request into curl command-line tokens.

    Token order: curl, URL, [-X METHOD], -H headers..., [data], --compressed.

    request may be an HttpRequest or a requests Request/PreparedRequest.
    mode defaults to the host OS dialect.
    """
    request = to_http_request(request)
    mode = EscapeMode.parse(mode) or detect_mode()
    if not _METHOD_RE.fullmatch(request.method):
        raise UnsupportedMethod(f"Unsupported HTTP method {request.method!r}")

    command = ["curl", escape_url(infer_url(request), mode)]
    ignored_headers: set[str] = set()
    inferred_method = "GET"
    data: list[str] = []

    content_type = request.header("Content-Type")
    body = _request_body(request, content_type, strict_multipart)
    if body is not None:
        if media_type(content_type) in NON_BINARY_CONTENT_TYPES:
            data += ["--data", escape(body, mode)]
        else:
            data += ["--data-binary", escape(body, mode)]
        ignored_headers.add("content-length")
        inferred_method = "POST"

    if request.method != inferred_method:
        command += ["-X", request.method]

    for name, value in request.headers:
        if name.lower() in ignored_headers:
            continue
        command += ["-H", escape(f"{name}: {value}", mode)]

    command += data
    command.append("--compressed")
    return command


def _request_body(
    request: HttpRequest,
    content_type: str | None,
    strict_multipart: bool,
) -> str | None:
    """Body text to send with --data/--data-binary, or None."""
    if not request.supports_body or request.body is None:
        return None
    if content_type is None:
        log.warning("Request %r has a body but no Content-Type; body omitted", request)
        return None
    if media_type(content_type) == MULTIPART_FORM_DATA:
        if strict_multipart:
            raise UnsupportedMultipartBody(
                "Multipart form bodies cannot be rendered as a curl command",
            )
        log.warning("Multipart body of %r is not supported; body omitted", request)
        return None
    return read_body(request.body, content_charset(content_type))


# ── URL inference ────────────────────────────────────────────────────────


def is_absolute_url(url: str) -> bool:
    parts = urlsplit(url)
    return bool(parts.scheme and parts.netloc)


def infer_url(request: HttpRequest) -> str:
    """Absolute URL of the request.

    A relative target gets its host from the Host header, or from the
    original request. The scheme is https when the host names port 443 or
    the original request was https; otherwise http. The original-request
    rule is a guess: a redirect chain that left https still reports https.
    """
    url = request.target
    if is_absolute_url(url):
        return url

    host = _infer_host(request)
    scheme = "http"
    if host.endswith(":443"):
        scheme = "https"
    elif request.original is not None and request.original.target.startswith("https"):
        scheme = "https"

    if request.method == "CONNECT":
        return f"{scheme}://{host}"
    return _DOUBLE_SLASH_RE.sub("/", f"{scheme}://{host}/{url}")


def _infer_host(request: HttpRequest) -> str:
    host = request.header("Host")
    if host:
        return host
    if request.original is None:
        raise UnsupportedRequestType(
            f"Cannot infer host of {request!r}: no Host header and no original request",
        )
    parts = urlsplit(request.original.target)
    if not parts.hostname:
        raise UnsupportedRequestType(
            f"Cannot infer host from original request URI '{request.original.target}'",
        )
    # netloc without credentials
    return parts.netloc.rpartition("@")[2]


def escape_url(url: str, mode: EscapeMode | str | None = None) -> str:
    """Shell-escape a URL with curl's glob characters backslashed."""
    return escape(_URL_GLOB_RE.sub(r"\\\g<0>", url), mode)
