"""http2curl interceptor - log a curl command for every request sent."""

import logging
import traceback

import requests
from requests.adapters import HTTPAdapter

from http2curl.core import Http2CurlError
from http2curl.escaping import EscapeMode
from http2curl.translator import generate_curl

CURL_LOGGER = "curl"

log = logging.getLogger(__name__)


class CurlLoggingOptions:
    """How generated commands are logged."""

    def __init__(
        self,
        log_level: int = logging.DEBUG,
        log_stacktrace: bool = False,
        mode: EscapeMode | None = None,
    ):
        self.log_level = log_level
        self.log_stacktrace = log_stacktrace
        self.mode = mode

    @classmethod
    def from_config(cls, defaults: dict) -> "CurlLoggingOptions":
        """Build options from the config 'defaults' section."""
        level = defaults.get("log_level", "DEBUG")
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log_level '{defaults['log_level']}'")
        return cls(
            log_level=level,
            log_stacktrace=bool(defaults.get("log_stacktrace", False)),
            mode=EscapeMode.parse(defaults.get("platform")),
        )


class CurlLoggingAdapter(HTTPAdapter):
    """Transport adapter that logs each request as curl before sending it.

    Mount it on a session; redirects and retries go through send() too,
    so every hop is logged.
    """

    def __init__(self, options: CurlLoggingOptions | None = None, **kwargs):
        self.options = options or CurlLoggingOptions()
        self.logger = logging.getLogger(CURL_LOGGER)
        super().__init__(**kwargs)

    def send(self, request, *args, **kwargs):
        self.log_request(request)
        return super().send(request, *args, **kwargs)

    def log_request(self, request: requests.PreparedRequest) -> None:
        try:
            curl = generate_curl(request, self.options.mode)
        except Http2CurlError:
            log.warning("Failed to generate curl command for %s %s", request.method, request.url, exc_info=True)
            return
        if self.options.log_stacktrace:
            curl = f"{curl}\n\tgenerated\n{_call_site()}"
        self.logger.log(self.options.log_level, curl)


def _call_site() -> str:
    # Drop the frames of this module.
    frames = traceback.format_stack()[:-3]
    return "".join(frames).rstrip("\n")


def curl_logging_session(options: CurlLoggingOptions | None = None) -> requests.Session:
    """Return a requests.Session that logs every request as curl."""
    session = requests.Session()
    adapter = CurlLoggingAdapter(options)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session
