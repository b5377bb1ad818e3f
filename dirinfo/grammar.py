"""
grammar.py -- Recognizers for the RFC 2425 line, parameter and value shapes.

Dependencies within the package:
  - errors (InvalidEncodingError)

The content line is read by a small hand-written scanner so that errors
carry the column where the line stopped making sense. Date, time and
integer values are matched with anchored regular expressions.

Line grammar (informal):
    [group "."] name *(";" param) ":" value
    param       = param-name "=" param-value *("," param-value)   ; v3.0
                / token                                           ; v2.1
    param-value = DQUOTE *QSAFE-CHAR DQUOTE / *SAFE-CHAR
"""

# ============================================================
# External dependencies
# ============================================================
import re
import string
from typing import NamedTuple

# ============================================================
# Internal package imports
# ============================================================
from dirinfo.errors import InvalidEncodingError


# ============================================================
# Character sets
# ============================================================
NAME_CHARS = frozenset(string.ascii_letters + string.digits + "-")

# CTL = %x00-08 / %x0A-1F / %x7F (tab is allowed)
_CTL_CHARS = frozenset(chr(c) for c in range(0x20) if c != 0x09) | {"\x7f"}
_NON_SAFE_CHARS = _CTL_CHARS | {'"', ";", ":", ","}
_NON_QSAFE_CHARS = _CTL_CHARS | {'"'}

# v2.1 bare parameters that name a transfer encoding instead of a TYPE.
_BARE_ENCODINGS = frozenset({"QUOTED-PRINTABLE", "BASE64"})


def is_safe_text(text: str) -> bool:
    """True if text may appear as an unquoted param-value."""
    return not any(ch in _NON_SAFE_CHARS for ch in text)


def is_qsafe_text(text: str) -> bool:
    """True if text may appear inside a double-quoted param-value."""
    return not any(ch in _NON_QSAFE_CHARS for ch in text)


# A v2.1 quoted-printable line whose value ends in a soft line break.
_UNTERMINATED_QP_RE = re.compile(r"^[^:]*QUOTED-PRINTABLE[^:]*:.*=$", re.IGNORECASE)


def is_unterminated_qp(line: str) -> bool:
    return bool(_UNTERMINATED_QP_RE.match(line))


# ============================================================
# Content line
# ============================================================
class LineParts(NamedTuple):
    """The pieces of one content line. name is upper-cased, group keeps its case."""
    group: str | None
    name: str
    params: dict
    value: str


class _Scanner:
    """Cursor over a single logical line."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def error(self, message: str) -> InvalidEncodingError:
        return InvalidEncodingError(message, line=self.text, column=self.pos + 1)

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            found = repr(self.peek()) if self.peek() else "end of line"
            raise self.error(f"expected {ch!r}, found {found}")
        self.pos += 1

    def take_while(self, chars: frozenset) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in chars:
            self.pos += 1
        return self.text[start:self.pos]

    def take_until(self, stop: frozenset) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in stop:
            self.pos += 1
        return self.text[start:self.pos]

    def name(self, what: str) -> str:
        token = self.take_while(NAME_CHARS)
        if not token:
            raise self.error(f"missing {what}")
        return token

    def rest(self) -> str:
        tail = self.text[self.pos:]
        self.pos = len(self.text)
        return tail


def parse_line(line: str) -> LineParts:
    """
    Splits one unfolded content line into group, name, params and value.

    Raises InvalidEncodingError if the line does not match the grammar.
    The returned params map upper-cased names to lists of values; a v2.1
    bare token is filed under ENCODING or TYPE.
    """
    for i, ch in enumerate(line):
        if ch in ("\r", "\n"):
            raise InvalidEncodingError("line break inside a logical line", line=line, column=i + 1)

    sc = _Scanner(line)
    first = sc.name("name")
    group = None
    if sc.peek() == ".":
        sc.advance()
        group = first
        name = sc.name("name after group")
    else:
        name = first

    params: dict[str, list[str]] = {}
    while sc.peek() == ";":
        sc.advance()
        pname, pvalues = _param(sc)
        params.setdefault(pname, []).extend(pvalues)

    sc.expect(":")
    # Trailing blanks show up in the wild ("BEGIN:VCARD "); they are not data.
    value = sc.rest().strip()
    return LineParts(group, name.upper(), params, value)


def _param(sc: _Scanner) -> tuple[str, list[str]]:
    token = sc.name("parameter name")
    if sc.peek() == "=":
        sc.advance()
        return token.upper(), _param_values(sc)

    # v2.1: TEL;WORK;VOICE:... or PHOTO;BASE64:...
    if token.upper() in _BARE_ENCODINGS:
        return "ENCODING", [token]
    return "TYPE", [token]


def _param_values(sc: _Scanner) -> list[str]:
    values = []
    while True:
        if sc.peek() == '"':
            sc.advance()
            quoted = sc.take_until(_NON_QSAFE_CHARS)
            sc.expect('"')
            values.append(quoted)
        else:
            token = sc.take_until(_NON_SAFE_CHARS)
            if token:
                values.append(token)
        if sc.peek() != ",":
            return values
        sc.advance()


# ============================================================
# Date / time / integer
# ============================================================
class DateParts(NamedTuple):
    year: int
    month: int
    day: int


class TimeParts(NamedTuple):
    hour: int
    minute: int
    second: int
    secfrac: float
    tz: str | None


class DateTimeParts(NamedTuple):
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    secfrac: float
    tz: str | None


_DATE = r"(\d{4})-?(\d{2})-?(\d{2})"
_TIME = r"(\d{2}):?(\d{2}):?(\d{2})(\.\d+)?(Z|[-+]\d{2}:?\d{2})?"

DATE_RE = re.compile(rf"^\s*{_DATE}\s*$")
TIME_RE = re.compile(rf"^\s*{_TIME}\s*$")
DATE_TIME_RE = re.compile(rf"^\s*{_DATE}T{_TIME}\s*$")
INTEGER_RE = re.compile(r"^\s*[-+]?\d+\s*$")


def match_date(text: str) -> DateParts:
    """'19961022' or '1996-10-22' -> DateParts(1996, 10, 22)."""
    m = DATE_RE.match(text)
    if not m:
        raise InvalidEncodingError(f"date {text!r} not valid")
    return DateParts(*(int(g) for g in m.groups()))


def _time_parts(groups) -> tuple:
    hour, minute, second, secfrac, tz = groups
    return int(hour), int(minute), int(second), float(secfrac) if secfrac else 0.0, tz


def match_time(text: str) -> TimeParts:
    """'140000Z' -> TimeParts(14, 0, 0, 0.0, 'Z')."""
    m = TIME_RE.match(text)
    if not m:
        raise InvalidEncodingError(f"time {text!r} not valid")
    return TimeParts(*_time_parts(m.groups()))


def match_date_time(text: str) -> DateTimeParts:
    """'19961022T140000' -> DateTimeParts(1996, 10, 22, 14, 0, 0, 0.0, None)."""
    m = DATE_TIME_RE.match(text)
    if not m:
        raise InvalidEncodingError(f"date-time {text!r} not valid")
    groups = m.groups()
    year, month, day = (int(g) for g in groups[:3])
    return DateTimeParts(year, month, day, *_time_parts(groups[3:]))


def match_integer(text: str) -> int:
    if not INTEGER_RE.match(text):
        raise InvalidEncodingError(f"integer {text!r} not valid")
    return int(text.strip())
