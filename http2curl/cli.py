"""http2curl CLI - turn an HTTP request into a runnable curl command."""

import logging
import sys

import click

TOOL_HELP = """\
http2curl — Reproduce an HTTP request as a curl command line.

Builds the request from METHOD, URL, headers and body, and prints the
curl command that sends the same request. The command is quoted for a
POSIX shell or for cmd.exe.

\b
MODES
─────
  Generate:    http2curl METHOD URL [options]
  Send:        http2curl METHOD URL --send [options]
  Convert:     http2curl --import-curl "curl ..." [--platform windows]

\b
GENERATE
────────
  http2curl GET http://localhost:9999/
  http2curl POST http://localhost:3000/api -H 'Content-Type: application/json' -b '{"a":1}'
  http2curl GET /status -H 'Host: example.com:443'       # → https://example.com:443/status

  Relative URLs use base_url from the config, or the Host header.

\b
SEND (--send)
─────────────
  Sends the request. The curl command of every hop (redirects
  included) is logged to stderr before it goes out, then:
    STATUS: 200
    TIME: 45ms

  --stacktrace adds the call site to each logged command.

\b
PLATFORM (--platform)
─────────────────────
  posix     '...' or $'...' (ANSI-C) quoting
  windows   "..." quoting for cmd.exe
  Default: the platform http2curl runs on.

\b
CONFIG FILE FORMAT (.http2curl.yaml)
────────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .http2curl.yaml / .http2curl.yml / http2curl.yaml / http2curl.yml in CWD
    3. ~/.http2curl/config.yaml (global)

  \b
  defaults:
    base_url: ${API_BASE_URL}       # env var resolved at runtime
    env_file: .env                  # load .env file
    platform: posix                 # posix | windows
    log_level: DEBUG                # level of logged curl commands
    log_stacktrace: false
    timeout: 30                     # seconds, for --send
    headers:
      Accept: application/json
"""


class _EchoHandler(logging.Handler):
    """Write log records to stderr through click."""

    def emit(self, record):
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("method", required=False)
@click.argument("url", required=False)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .http2curl.yaml in CWD, then ~/.http2curl/config.yaml.",
)
@click.option("-b", "--body", default=None, help="Request body.")
@click.option(
    "-H",
    "--header",
    multiple=True,
    help="HTTP header as 'Name: Value'. Repeatable, order is kept.",
)
@click.option(
    "--platform",
    type=click.Choice(["posix", "windows"], case_sensitive=False),
    default=None,
    help="Shell dialect to quote for. Default: config, then the host OS.",
)
@click.option(
    "--import-curl",
    "import_curl",
    default=None,
    help="Parse a curl command and print it in canonical form.",
)
@click.option(
    "--send",
    is_flag=True,
    default=False,
    help="Send the request, logging its curl command to stderr.",
)
@click.option(
    "--stacktrace",
    is_flag=True,
    default=False,
    help="With --send, log the call site along with each command.",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Request timeout in seconds for --send. Default: 30.",
)
def main(
    method,
    url,
    config_file,
    body,
    header,
    platform,
    import_curl,
    send,
    stacktrace,
    timeout,
):
    """Generate curl commands from HTTP requests."""
    from http2curl.core import (
        build_request,
        default_headers,
        load_config,
        load_env,
        parse_curl,
        resolve_config_path,
        resolve_value,
    )
    from http2curl.escaping import EscapeMode
    from http2curl.executor import execute_request
    from http2curl.interceptor import CurlLoggingOptions
    from http2curl.translator import generate_curl

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    config = load_config(config_path)
    defaults = config.get("defaults", {})
    env = load_env(defaults.get("env_file"), config.get("_config_dir"))

    try:
        options = CurlLoggingOptions.from_config(defaults)
    except ValueError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)
    if platform:
        options.mode = EscapeMode.parse(platform)
    if stacktrace:
        options.log_stacktrace = True

    # --- Dispatch ---

    if import_curl:
        _cmd_import_curl(import_curl, options, parse_curl, build_request, generate_curl)
        return

    if method and url:
        base_url = resolve_value(defaults.get("base_url"), env) or ""
        if base_url and not url.startswith(("http://", "https://")):
            url = base_url.rstrip("/") + "/" + url.lstrip("/")
        headers = default_headers(defaults, env) + _parse_headers(header)

        if send:
            _cmd_send(
                method,
                url,
                headers,
                body,
                _resolve_timeout(timeout, defaults.get("timeout")),
                options,
                execute_request,
            )
            return

        request = build_request(method, url, headers, body)
        _echo_curl(generate_curl, request, options)
        return

    # Nothing matched — show help
    ctx = click.get_current_context()
    click.echo(ctx.get_help())
    ctx.exit(1)


# ── Subcommand implementations ──────────────────────────────────────────


def _cmd_import_curl(curl_str, options, parse_curl, build_request, generate_curl):
    parsed = parse_curl(curl_str)
    if parsed.get("error"):
        click.echo(f"Error parsing curl: {parsed['error']}", err=True)
        sys.exit(1)
    request = build_request(parsed["method"], parsed["url"], parsed["headers"], parsed["body"])
    _echo_curl(generate_curl, request, options)


def _cmd_send(method, url, headers, body, timeout, options, execute_request):
    handler = _EchoHandler()
    curl_logger = logging.getLogger("curl")
    curl_logger.addHandler(handler)
    previous_level = curl_logger.level
    curl_logger.setLevel(options.log_level)
    try:
        result = execute_request(
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeout=timeout,
            options=options,
        )
    finally:
        curl_logger.removeHandler(handler)
        curl_logger.setLevel(previous_level)

    if result.error:
        click.echo(f"ERROR: {result.error}", err=True)
        sys.exit(1)
    click.echo(f"STATUS: {result.status_code}")
    click.echo(f"TIME: {result.elapsed_ms:.0f}ms")


# ── Helpers ──────────────────────────────────────────────────────────────


def _echo_curl(generate_curl, request, options):
    from http2curl.core import Http2CurlError

    try:
        click.echo(generate_curl(request, options.mode))
    except Http2CurlError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


def _parse_headers(header_tuples):
    """Parse -H 'Name: Value' tuples into an ordered list of pairs."""
    headers = []
    for h in header_tuples:
        if ":" in h:
            k, v = h.split(":", 1)
            headers.append((k.strip(), v.strip()))
    return headers


def _resolve_timeout(*sources, default=30):
    """Return the first truthy timeout from sources, or default."""
    for t in sources:
        if t:
            return t
    return default
