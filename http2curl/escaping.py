"""http2curl escaping - shell quoting for POSIX shells and cmd.exe."""

from __future__ import annotations

import enum
import re
import sys
from functools import lru_cache

# Printable ASCII without the single quote survives '...' untouched.
_PLAIN_POSIX_RE = re.compile(r"[\x20-\x26\x28-\x7e]*")
_LINE_BREAKS_RE = re.compile(r"[\r\n]+")

# Two-character escapes understood inside $'...'
_ANSI_C_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
}


class EscapeMode(enum.Enum):
    """Shell dialect the generated command is meant to be pasted into."""

    POSIX = "posix"
    WINDOWS = "windows"

    @classmethod
    def parse(cls, value: str | EscapeMode | None) -> EscapeMode | None:
        """Accept an EscapeMode, its value ('posix'/'windows') or None."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown platform '{value}'. Expected one of: {choices}") from None


@lru_cache(maxsize=1)
def detect_mode() -> EscapeMode:
    """Escaping mode of the host OS. Evaluated once per process."""
    return EscapeMode.WINDOWS if sys.platform.startswith("win") else EscapeMode.POSIX


def escape(raw: str, mode: EscapeMode | None = None) -> str:
    """Quote a string so the target shell passes it to curl unchanged."""
    mode = EscapeMode.parse(mode) or detect_mode()
    if mode is EscapeMode.WINDOWS:
        return escape_windows(raw)
    return escape_posix(raw)


def escape_posix(raw: str) -> str:
    """POSIX shell quoting.

    Plain printable ASCII goes into single quotes verbatim. Anything else
    uses ANSI-C quoting where every character is written as an escape
    sequence, so the output does not depend on the shell's locale:

      it's     → $'\\x69\\x74\\'\\x73'
      a\\nb     → $'\\x61\\n\\x62'
    """
    if _PLAIN_POSIX_RE.fullmatch(raw):
        return f"'{raw}'"
    return "$'" + "".join(_escape_char(c) for c in raw) + "'"


def _escape_char(c: str) -> str:
    if c in _ANSI_C_ESCAPES:
        return _ANSI_C_ESCAPES[c]
    code = ord(c)
    if code < 0x100:
        return f"\\x{code:02x}"
    if code <= 0xFFFF:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def escape_windows(raw: str) -> str:
    """cmd.exe quoting.

    - '"' is doubled, which both cmd.exe and the MS CRT argument parser
      read as a literal quote.
    - '%' becomes '"%"' so cmd.exe cannot expand an environment variable.
      '%%' turns into '"%""%"', and no variable can be named '""'.
    - Backslashes stay single; inside double quotes nothing collapses them.
    - Line breaks are moved outside the quotes behind a caret, since
      cmd.exe does not accept them inside a quoted argument.
    """
    escaped = raw.replace('"', '""').replace("%", '"%"')
    escaped = _LINE_BREAKS_RE.sub(lambda m: '"^' + m.group(0) + '"', escaped)
    return f'"{escaped}"'
