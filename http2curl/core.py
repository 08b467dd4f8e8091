"""http2curl core - request model, adapters, config loading, curl import."""

import codecs
import os
import re
import shlex
from pathlib import Path
from typing import Any

import requests
import yaml
from dotenv import dotenv_values

GLOBAL_DIR = Path.home() / ".http2curl"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".http2curl.yaml",
    ".http2curl.yml",
    "http2curl.yaml",
    "http2curl.yml",
]


# ── Errors ───────────────────────────────────────────────────────────────


class Http2CurlError(Exception):
    """Base class for failures while turning a request into a command."""


class UnreadableBody(Http2CurlError):
    """The request body cannot be materialized into a string."""


class UnsupportedRequestType(Http2CurlError):
    """The request (or the request it wraps) is of an unknown kind."""


class UnsupportedMultipartBody(Http2CurlError):
    """Multipart form bodies cannot be rendered as curl arguments."""


class UnsupportedMethod(Http2CurlError):
    """The request method is not a plain token that is safe to print."""


# ── Request model ────────────────────────────────────────────────────────


class HttpRequest:
    """An outgoing HTTP request, as seen by the translator.

    target is either an absolute URL or an origin-form path ("/a?b=1").
    headers keep their order and may repeat. original points at the
    request this one was derived from (e.g. before a redirect), and is
    only used to recover the scheme and host of a relative target.
    """

    def __init__(
        self,
        method: str,
        target: str,
        headers: list[tuple[str, str]] | None = None,
        body: Any = None,
        supports_body: bool = True,
        original: "HttpRequest | None" = None,
    ):
        self.method = method
        self.target = target
        self.headers: list[tuple[str, str]] = list(headers or [])
        self.body = body
        self.supports_body = supports_body
        self.original = original

    def header(self, name: str) -> str | None:
        """First value of the named header (case-insensitive), or None."""
        lower = name.lower()
        for k, v in self.headers:
            if k.lower() == lower:
                return v
        return None

    def __repr__(self) -> str:
        return f"<HttpRequest {self.method} {self.target}>"


def from_prepared(
    prepared: requests.PreparedRequest,
    original: HttpRequest | None = None,
) -> HttpRequest:
    """Adapt a requests.PreparedRequest."""
    return HttpRequest(
        method=prepared.method or "GET",
        target=prepared.url or "",
        headers=[
            (_header_text(k), _header_text(v)) for k, v in (prepared.headers or {}).items()
        ],
        body=prepared.body,
        original=original,
    )


def _header_text(value: str | bytes) -> str:
    # requests sends bytes header parts as latin-1
    return value.decode("latin-1") if isinstance(value, bytes) else value


def to_http_request(request: Any) -> HttpRequest:
    """Return an HttpRequest for any supported request representation."""
    if isinstance(request, HttpRequest):
        return request
    if isinstance(request, requests.PreparedRequest):
        return from_prepared(request)
    if isinstance(request, requests.Request):
        return from_prepared(request.prepare())
    raise UnsupportedRequestType(f"Unsupported request class type: {type(request).__name__}")


def build_request(
    method: str,
    url: str,
    headers: list[tuple[str, str]] | None = None,
    body: str | None = None,
) -> HttpRequest:
    """Build an HttpRequest from loose values (CLI, imported curl)."""
    return HttpRequest(method=method.upper(), target=url, headers=headers, body=body)


# ── Body helpers ─────────────────────────────────────────────────────────


def media_type(content_type: str | None) -> str | None:
    """'Application/JSON; charset=utf-8' -> 'application/json'."""
    if content_type is None:
        return None
    return content_type.split(";", 1)[0].strip().lower()


def content_charset(content_type: str | None) -> str | None:
    """Value of the charset parameter of a Content-Type header."""
    if not content_type:
        return None
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return None


def read_body(body: Any, charset: str | None = None) -> str:
    """Materialize a request body as text.

    Accepts str, bytes-like, and seekable file-like bodies. A file-like
    body is rewound to where it was so the request can still be sent.
    Raises UnreadableBody for streams that would be consumed by reading.
    """
    if isinstance(body, str):
        return body
    if isinstance(body, bytes | bytearray | memoryview):
        return _decode(bytes(body), charset)
    if hasattr(body, "read"):
        seekable = getattr(body, "seekable", lambda: hasattr(body, "seek"))
        try:
            if not seekable():
                raise UnreadableBody("Request body stream is not seekable")
            position = body.tell()
            data = body.read()
            body.seek(position)
        except (OSError, ValueError) as e:
            raise UnreadableBody(f"Failed to read request body: {e}") from e
        return data if isinstance(data, str) else _decode(data, charset)
    raise UnreadableBody(
        f"Cannot read request body of type {type(body).__name__} without consuming it",
    )


def _decode(data: bytes, charset: str | None) -> str:
    try:
        return data.decode(charset or "utf-8")
    except (UnicodeDecodeError, LookupError):
        return data.decode("iso-8859-1")


# ── Config ───────────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard — no fallthrough if missing)
      2. .http2curl.yaml (variants) in CWD
      3. ~/.http2curl/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns empty defaults if not found."""
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return {
        "defaults": data.get("defaults") or {},
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path | None = None) -> dict[str, str]:
    """Load .env file and merge it over os.environ."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir or ".") / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} references in a string value.

    Unknown variables are left as written.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def default_headers(defaults: dict, env: dict[str, str]) -> list[tuple[str, str]]:
    """Config default headers with their values resolved."""
    return [
        (k, resolve_value(str(v), env) or "")
        for k, v in (defaults.get("headers") or {}).items()
    ]


# ── Curl import ──────────────────────────────────────────────────────────

# curl flags that take no value
_CURL_SWITCHES = {
    "--compressed",
    "-g",
    "--globoff",
    "-i",
    "--include",
    "-k",
    "--insecure",
    "-L",
    "--location",
    "-s",
    "--silent",
    "-v",
    "--verbose",
}

_ANSI_C_RE = re.compile(r"\$'((?:[^'\\]|\\.)*)'")
_GLOB_ESCAPE_RE = re.compile(r"\\([\[\]{}\\])")


def _decode_ansi_c(content: str) -> str:
    """Decode the inside of a $'...' word."""
    raw = content.encode("latin-1", "backslashreplace")
    return codecs.decode(raw, "unicode_escape")


def _expand_ansi_c(cmd: str) -> str:
    """Rewrite unquoted $'...' words as plain single-quoted words.

    A $' inside single or double quotes, or after a backslash, is literal.
    """
    out = []
    quote = None
    i = 0
    while i < len(cmd):
        ch = cmd[i]
        if ch == "\\" and quote != "'":
            out.append(cmd[i : i + 2])
            i += 2
            continue
        if quote is None:
            m = _ANSI_C_RE.match(cmd, i) if ch == "$" else None
            if m:
                out.append(shlex.quote(_decode_ansi_c(m.group(1))))
                i = m.end()
                continue
            if ch in "'\"":
                quote = ch
        elif ch == quote:
            quote = None
        out.append(ch)
        i += 1
    return "".join(out)


def parse_curl(curl_command: str) -> dict:
    """Parse a curl command string into components.

    Returns: {"method": ..., "url": ..., "headers": [(k, v), ...],
              "body": ..., "error": None}
    Handles: -X, -H, -d, --data, --data-raw, --data-binary, --json,
    quoted strings, escaped newlines. A body without -X implies POST.
    """
    result: dict[str, Any] = {
        "method": None,
        "url": "",
        "headers": [],
        "body": None,
        "error": None,
    }

    # Normalize line continuations
    cmd = curl_command.replace("\\\r\n", " ").replace("\\\n", " ").strip()
    cmd = _expand_ansi_c(cmd)

    try:
        tokens = shlex.split(cmd)
    except ValueError as e:
        result["error"] = f"Parse error: {e}"
        return result

    if tokens and tokens[0] == "curl":
        tokens = tokens[1:]

    i = 0
    while i < len(tokens):
        tok = tokens[i]

        if tok in ("-X", "--request") and i + 1 < len(tokens):
            result["method"] = tokens[i + 1].upper()
            i += 2
        elif tok in ("-H", "--header") and i + 1 < len(tokens):
            header = tokens[i + 1]
            colon = header.find(":")
            if colon != -1:
                result["headers"].append((header[:colon].strip(), header[colon + 1 :].strip()))
            i += 2
        elif tok in ("-d", "--data", "--data-raw", "--data-binary") and i + 1 < len(tokens):
            result["body"] = tokens[i + 1]
            i += 2
        elif tok == "--json" and i + 1 < len(tokens):
            result["body"] = tokens[i + 1]
            names = {k.lower() for k, _ in result["headers"]}
            if "content-type" not in names:
                result["headers"].append(("Content-Type", "application/json"))
            if "accept" not in names:
                result["headers"].append(("Accept", "application/json"))
            i += 2
        elif tok in _CURL_SWITCHES or tok.startswith("--no-"):
            i += 1
        elif tok.startswith("-"):
            # Skip unknown flags; consume next token if it looks like a value
            if i + 1 < len(tokens) and not tokens[i + 1].startswith("-"):
                i += 2
            else:
                i += 1
        else:
            if not result["url"]:
                result["url"] = _GLOB_ESCAPE_RE.sub(r"\1", tok)
            i += 1

    if result["method"] is None:
        result["method"] = "POST" if result["body"] is not None else "GET"
    if not result["url"]:
        result["error"] = "No URL found in curl command"
    return result
