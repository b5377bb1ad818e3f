"""
codec.py -- Value-level encoding and decoding (RFC 2425 section 5.8.4).

Dependencies within the package:
  - errors (InvalidEncodingError, UnencodeableError)
  - grammar (date/time/integer matchers, safe character checks)

Covers:
  - TEXT escaping / unescaping and comma separated TEXT lists
  - DATE, TIME, DATE-TIME and INTEGER values and their lists
  - base64 and quoted-printable transfer encodings
  - param-value quoting
  - encode_value: the value types Field.create() accepts
"""

# ============================================================
# External dependencies
# ============================================================
import base64
import binascii
import datetime
import quopri
import re
from enum import Enum

# ============================================================
# Internal package imports
# ============================================================
from dirinfo.errors import InvalidEncodingError, UnencodeableError
from dirinfo.grammar import (
    DateParts,
    DateTimeParts,
    TimeParts,
    is_qsafe_text,
    is_safe_text,
    match_date,
    match_date_time,
    match_integer,
    match_time,
)


class Encoding(str, Enum):
    """Transfer encodings that Field.create() applies itself."""
    B64 = "b64"


# ============================================================
# TEXT
# ============================================================
_TEXT_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_TEXT_SPECIALS_RE = re.compile(r"([\\,;])")
_NEWLINE_RE = re.compile(r"\r?\n")


def decode_text(value: str) -> str:
    """
    RFC 2425 TEXT -> str.
      \\\\ -> \\    \\n, \\N -> newline    \\, -> ,    \\; -> ;
    Any other escaped character stands for itself (iCal.app escapes
    double quotes). A lone trailing backslash is kept as is.
    """
    def repl(m):
        ch = m.group(1)
        return "\n" if ch in ("n", "N") else ch
    return _TEXT_ESCAPE_RE.sub(repl, value)


def encode_text(value: str) -> str:
    """str -> RFC 2425 TEXT (inverse of decode_text)."""
    return _NEWLINE_RE.sub(r"\\n", _TEXT_SPECIALS_RE.sub(r"\\\1", value))


def split_list(value: str, sep: str = ",") -> list[str]:
    """
    Splits on unescaped `sep`. Escapes stay in the pieces so that they
    can be decoded afterwards.
    """
    parts: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(value):
        if value[i] == "\\" and i + 1 < len(value):
            current.append(value[i:i + 2])
            i += 2
        elif value[i] == sep:
            parts.append("".join(current))
            current = []
            i += 1
        else:
            current.append(value[i])
            i += 1
    parts.append("".join(current))
    return parts


def decode_text_list(value: str, sep: str = ",") -> list[str]:
    """'a\\,b,c' -> ['a,b', 'c']"""
    return [decode_text(part) for part in split_list(value, sep)]


def encode_text_list(values, sep: str = ",") -> str:
    """['a,b', 'c'] -> 'a\\,b,c'. A single str is encoded as one item."""
    if isinstance(values, str):
        return encode_text(values)
    return sep.join(encode_text(v) for v in values)


# ============================================================
# DATE / TIME / DATE-TIME / INTEGER
# ============================================================
def _decode_items(value: str, matcher) -> list:
    items = []
    for item in split_list(value, ","):
        item = item.strip()
        if item:
            items.append(matcher(item))
    return items


def decode_date_list(value: str) -> list[DateParts]:
    return _decode_items(value, match_date)


def decode_time_list(value: str) -> list[TimeParts]:
    return _decode_items(value, match_time)


def decode_date_time_list(value: str) -> list[DateTimeParts]:
    return _decode_items(value, match_date_time)


def decode_integer_list(value: str) -> list[int]:
    return _decode_items(value, match_integer)


# RFC 2425 also allows yyyy-mm-ddThh:mm:ss, RFC 2445 does not.
# We write the subset that is valid for both.
def encode_date(d: datetime.date) -> str:
    return "%04d%02d%02d" % (d.year, d.month, d.day)


def encode_date_time(d: datetime.datetime) -> str:
    """Naive datetimes are written as floating time, aware ones in UTC with 'Z'."""
    suffix = ""
    if d.tzinfo is not None and d.utcoffset() is not None:
        d = d.astimezone(datetime.timezone.utc)
        suffix = "Z"
    return "%04d%02d%02dT%02d%02d%02d%s" % (
        d.year, d.month, d.day, d.hour, d.minute, d.second, suffix)


def encode_integer(i: int) -> str:
    return str(int(i))


def parts_to_tzinfo(tz: str | None) -> datetime.tzinfo | None:
    """'Z' -> UTC, '+0130' / '-05:00' -> fixed offset, None -> None (floating)."""
    if tz is None:
        return None
    if tz == "Z":
        return datetime.timezone.utc
    sign = -1 if tz[0] == "-" else 1
    digits = tz[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if minutes > 59:
        raise InvalidEncodingError(f"time zone offset {tz!r} not valid: minutes out of range")
    offset = datetime.timedelta(hours=hours, minutes=minutes)
    try:
        return datetime.timezone(sign * offset)
    except ValueError as e:
        raise InvalidEncodingError(f"time zone offset {tz!r} not valid: {e}") from e


# ============================================================
# Transfer encodings
# ============================================================
def decode_base64(value: str) -> bytes:
    """
    base64 -> bytes.
    Some writers start base64 continuation lines with two spaces; the
    extra space survives unfolding. base64 never contains spaces, so all
    of them are stripped before decoding.
    Any other character outside the base64 alphabet is an error.
    """
    try:
        return base64.b64decode(value.replace(" ", ""), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncodingError(f"base64 value not valid: {e}") from e


def encode_base64(data) -> str:
    """bytes (or str, as UTF-8) -> single-line base64."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(bytes(data)).decode("ascii")


def decode_quoted_printable(value: str) -> bytes:
    """quoted-printable -> bytes. '=' at the end of a line is a soft break."""
    try:
        raw = value.encode("ascii")
    except UnicodeEncodeError as e:
        raise InvalidEncodingError(f"quoted-printable value contains non-ASCII text: {e}") from e
    return quopri.decodestring(raw)


# ============================================================
# Parameter values
# ============================================================
def encode_paramvalue(value: str) -> str:
    """param-value = paramtext / quoted-string"""
    # an empty paramtext would read back as no value at all
    if not value:
        return '""'
    if is_safe_text(value):
        return value
    if is_qsafe_text(value):
        return f'"{value}"'
    raise UnencodeableError(
        f"Cannot encode paramvalue. Invalid characters in {value!r}. "
        "Only SAFE-CHARs and QSAFE-CHARs are allowed.")


# ============================================================
# Field values
# ============================================================
def encode_value(value) -> str:
    """
    Python value -> raw field value.

      datetime.datetime -> DATE-TIME
      datetime.date     -> DATE
      int               -> INTEGER
      str               -> as is (not TEXT-escaped, see encode_text)
      list / tuple      -> items joined with ';'
      Enum              -> its value

    Anything else raises UnencodeableError.
    """
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime.datetime):
        return encode_date_time(value)
    if isinstance(value, datetime.date):
        return encode_date(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise UnencodeableError(f"cannot encode boolean {value!r}, pass 'TRUE' or 'FALSE'")
    if isinstance(value, int):
        return encode_integer(value)
    if isinstance(value, (list, tuple)):
        return ";".join(encode_value(v) for v in value)
    raise UnencodeableError(f"cannot encode value of type {type(value).__name__}: {value!r}")
