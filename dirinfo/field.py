"""
field.py -- One content line of a directory-info object.

Dependencies within the package:
  - codec (value encoding/decoding)
  - config (Config)
  - errors
  - folding (fold)
  - grammar (parse_line)
  - utils (log)

A Field holds its decoded pieces and the line text they came from in one
immutable FieldState. Every change builds a complete new line, parses it
again and only then replaces the state, so the pieces and the line text
can never disagree.

Main entry points:
  - Field.decode(line): parse an unfolded line
  - Field.create(name, value, params): build a line from parts
  - Field.encode(width, newline): line text, folded
"""

# ============================================================
# External dependencies
# ============================================================
import datetime
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

# ============================================================
# Internal package imports
# ============================================================
from dirinfo import codec
from dirinfo.codec import Encoding
from dirinfo.config import Config
from dirinfo.errors import (
    FrozenFieldError,
    InvalidEncodingError,
    UnencodeableError,
    UnsupportedError,
)
from dirinfo.folding import fold
from dirinfo.grammar import parse_line
from dirinfo.utils import log


# ============================================================
# State record
# ============================================================
class FieldState(BaseModel):
    """Decoded pieces of one line plus the line itself. Never modified in place."""
    model_config = ConfigDict(frozen=True)

    line: str
    valid: bool = True
    group: str | None = None
    name: str = ""
    params: dict[str, tuple[str, ...]] = {}
    value: str | None = None


def _decode_state(line: str) -> FieldState:
    """Parses line into a valid FieldState. Raises InvalidEncodingError."""
    parts = parse_line(line)
    params = {pname: tuple(pvalues) for pname, pvalues in parts.params.items()}
    return FieldState(line=line, group=parts.group, name=parts.name,
                      params=params, value=parts.value)


def _encode_line(group, name: str, params, value) -> str:
    """
    Builds the line text:  [<group>.]<name>;<pname>=<pvalue>,<pvalue>:<value>

    An Encoding.B64 parameter value is written as 'B' and the field value
    is base64-encoded.
    """
    out = []
    if group:
        out.append(str(group) + ".")
    out.append(str(name))

    b64 = False
    for pname, pvalues in (params or {}).items():
        if isinstance(pvalues, (str, Encoding)) or not isinstance(pvalues, (list, tuple)):
            pvalues = [pvalues]
        encoded = []
        for pvalue in pvalues:
            if pvalue is Encoding.B64:
                if str(pname).upper() != "ENCODING":
                    raise UnencodeableError(f"Encoding.B64 is only valid for ENCODING, not {pname!r}")
                # the RFC 2425 name of base64
                pvalue = "B"
                b64 = True
            elif isinstance(pvalue, Encoding):
                pvalue = pvalue.value
            encoded.append(codec.encode_paramvalue(str(pvalue)))
        out.append(";" + str(pname) + "=" + ",".join(encoded))

    if b64:
        if not isinstance(value, (str, bytes, bytearray)):
            raise UnencodeableError(f"cannot base64-encode value of type {type(value).__name__}")
        raw_value = codec.encode_base64(value)
    elif isinstance(value, (bytes, bytearray)):
        raise UnencodeableError("binary values need ENCODING=Encoding.B64")
    else:
        raw_value = codec.encode_value(value)

    out.append(":")
    out.append(raw_value)
    return "".join(out)


# ============================================================
# Field
# ============================================================
class Field:
    """A field in a directory-info object, e.g. 'item1.TEL;TYPE=WORK:+1-555-0100'."""

    def __init__(self, state: FieldState, frozen: bool = False) -> None:
        self._state = state
        self._frozen = frozen

    # --------------------------------------------------------
    # Construction
    # --------------------------------------------------------
    @classmethod
    def decode(cls, line: str, config: Config | None = None) -> "Field":
        """
        Creates a field by decoding `line`, which must already be unfolded.
        One trailing CRLF or LF is ignored. Decoded fields are frozen, see
        copy().

        If the line does not match the grammar, InvalidEncodingError is
        raised when config.raise_on_invalid_line is set (the default),
        otherwise an invalid field is returned (valid == False, empty name
        and group, value None).
        """
        config = config or Config()
        # A single line terminator (as left by encode()) is not part of the line.
        if line.endswith("\r\n"):
            line = line[:-2]
        elif line.endswith("\n"):
            line = line[:-1]
        try:
            state = _decode_state(line)
        except InvalidEncodingError:
            if config.raise_on_invalid_line:
                raise
            log.debug("Invalid line kept as invalid field: %r", line)
            state = FieldState(line=line, valid=False, group="", name="")
        return cls(state, frozen=True)

    @classmethod
    def create(cls, name: str, value="", params: dict | None = None,
               group: str | None = None) -> "Field":
        """
        Creates a field from its parts.

        `params` maps a parameter name to a str, a list of str, or
        Encoding.B64. With {"ENCODING": Encoding.B64} the value (bytes or
        str) is base64-encoded and the parameter is written as ENCODING=B.
        If the value is already base64, pass "B" instead.

        For the accepted value types see codec.encode_value(). str values
        are written as given; use codec.encode_text() or set_text() for
        TEXT escaping.

        Raises UnencodeableError if the resulting line would not decode.
        """
        line = _encode_line(group, name, params, value)
        try:
            state = _decode_state(line)
        except InvalidEncodingError as e:
            raise UnencodeableError(str(e)) from e
        return cls(state)

    def copy(self) -> "Field":
        """An unfrozen copy. FieldState is immutable, so it can be shared."""
        return Field(self._state)

    # --------------------------------------------------------
    # Encoding
    # --------------------------------------------------------
    def encode(self, width: int = 75, newline: str = "\n") -> str:
        """
        The line text, folded to `width` octets (0 = no folding) and
        terminated with `newline`. RFC 2425 wants "\\r\\n"; the default
        "\\n" is kept for compatibility with older callers.
        """
        return fold(self._state.line.rstrip(), width, newline)

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"Field({self._state.line!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Field):
            return NotImplemented
        return self._state == other._state

    def __hash__(self) -> int:
        # equal state implies equal line; mutable fields must not sit in sets
        if not self._frozen:
            raise TypeError("unhashable: Field is mutable, hash a decoded field instead")
        return hash(self._state.line)

    # --------------------------------------------------------
    # Identity
    # --------------------------------------------------------
    @property
    def line(self) -> str:
        return self._state.line

    @property
    def valid(self) -> bool:
        return self._state.valid

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def name(self) -> str:
        """Upper-cased field name."""
        return self._state.name

    @property
    def group(self) -> str | None:
        """The group, or None if the line has no group prefix."""
        return self._state.group

    def is_name(self, name: str) -> bool:
        """Names are case insensitive."""
        return self._state.name.upper() == name.upper()

    def is_group(self, group: str | None) -> bool:
        """Groups are case insensitive. None matches a field without group."""
        if group is None or self._state.group is None:
            return group is None and self._state.group is None
        return self._state.group.upper() == group.upper()

    # --------------------------------------------------------
    # Parameters
    # --------------------------------------------------------
    @property
    def params(self) -> MappingProxyType:
        """Read-only mapping of upper-cased param name -> tuple of values."""
        return MappingProxyType(self._state.params)

    def pnames(self) -> list[str]:
        return list(self._state.params)

    def pvalues(self, name: str) -> tuple[str, ...] | None:
        """All values of param `name`, None if absent, () if it has no values."""
        return self._state.params.get(name.upper())

    __getitem__ = pvalues

    def pvalue(self, name: str) -> str | None:
        """First value of param `name`; None if absent, valueless or empty."""
        values = self.pvalues(name)
        if values and values[0]:
            return values[0]
        return None

    def each_param(self):
        """Yields (name, values) pairs in line order."""
        yield from self._state.params.items()

    def _single_param(self, name: str) -> str | None:
        values = self.pvalues(name)
        if not values:
            return None
        if len(values) > 1:
            raise InvalidEncodingError(f"multi-valued param {name!r} ({', '.join(values)})")
        return values[0]

    @property
    def encoding(self) -> str | None:
        """Upper-cased ENCODING param, None if absent."""
        e = self._single_param("ENCODING")
        return e.upper() if e is not None else None

    @property
    def kind(self) -> str | None:
        """Lower-cased VALUE param (the value type), None if absent."""
        v = self._single_param("VALUE")
        return v.lower() if v is not None else None

    def is_kind(self, kind: str) -> bool:
        """
        Is the value of type `kind` according to the VALUE param?
        VALUE is optional and often missing, so False says little.
        """
        k = self.kind
        return k is not None and k == kind.lower()

    def is_type(self, type_: str) -> bool:
        """Is `type_` one of the TYPE param values? Case insensitive."""
        wanted = type_.upper()
        return any(t.upper() == wanted for t in self.pvalues("TYPE") or ())

    def is_pref(self) -> bool:
        """A vCard field is preferred if it has TYPE=PREF."""
        return self.is_type("PREF")

    # --------------------------------------------------------
    # Value
    # --------------------------------------------------------
    @property
    def value_raw(self) -> str | None:
        """The value as it appears in the line."""
        return self._state.value

    @property
    def value(self):
        """
        The value with its transfer encoding removed.

        Both the RFC 2425 encoding ("B") and the vCard 2.1 encodings
        ("BASE64", "QUOTED-PRINTABLE", "8BIT", "7BIT") are understood.
        base64 yields bytes; quoted-printable is decoded with the CHARSET
        param (default UTF-8) and yields str.
        """
        raw = self._state.value
        if raw is None:
            return None
        encoding = self.encoding
        if encoding in (None, "7BIT", "8BIT"):
            return raw
        if encoding in ("B", "BASE64"):
            return codec.decode_base64(raw)
        if encoding == "QUOTED-PRINTABLE":
            charset = self.pvalue("CHARSET") or "utf-8"
            try:
                return codec.decode_quoted_printable(raw).decode(charset)
            except (LookupError, UnicodeDecodeError) as e:
                raise InvalidEncodingError(f"quoted-printable value not decodable as {charset}: {e}") from e
        raise InvalidEncodingError(f"unrecognized encoding ({encoding})")

    def has_value(self, value: str) -> bool:
        """Is the raw value `value`? Case insensitive."""
        raw = self._state.value
        return raw is not None and raw.upper() == value.upper()

    def as_text(self) -> str:
        """The value as TEXT, with escapes removed."""
        return codec.decode_text(self._text_value())

    def as_text_list(self, sep: str = ",") -> list[str]:
        """The value as a `sep`-separated list of TEXT values."""
        return codec.decode_text_list(self._text_value(), sep)

    def _text_value(self) -> str:
        value = self.value
        if isinstance(value, bytes):
            raise InvalidEncodingError(f"{self.name} has a binary value, not TEXT")
        if value is None:
            raise InvalidEncodingError("invalid field has no value", line=self.line)
        return value

    def as_time(self) -> list[datetime.datetime]:
        """
        The value as a list of datetimes (dates and times in RFC 2425 are
        always lists). DATE-TIME is tried first: 'Z' gives UTC, an offset
        gives a fixed-offset zone, no zone gives a naive datetime. Then
        DATE, at midnight UTC. InvalidEncodingError if neither works.
        """
        text = self._text_value()
        try:
            return [_to_datetime(p) for p in codec.decode_date_time_list(text)]
        except InvalidEncodingError:
            return [_to_datetime(p, datetime.timezone.utc) for p in codec.decode_date_list(text)]

    def as_date(self) -> list[datetime.date]:
        """
        The value as a list of dates. The value may be a list of DATE-TIME
        or DATE values, tried in that order.
        """
        text = self._text_value()
        try:
            return [_to_date(p) for p in codec.decode_date_time_list(text)]
        except InvalidEncodingError:
            return [_to_date(p) for p in codec.decode_date_list(text)]

    def as_typed(self):
        """
        The value converted according to the VALUE param (TEXT if absent).

          text           -> str            uri     -> str (raw)
          date           -> list[date]     time    -> list[TimeParts]
          date-time      -> list[datetime] integer -> list[int]
          boolean        -> list[bool]     float   -> list[float]
          binary         -> bytes

        Other value types raise UnsupportedError.
        """
        kind = self.kind or "text"
        if kind == "text":
            return self.as_text()
        if kind == "uri":
            return self._text_value()
        if kind == "date":
            return self.as_date()
        if kind == "date-time":
            return self.as_time()
        if kind == "time":
            return codec.decode_time_list(self._text_value())
        if kind == "integer":
            return codec.decode_integer_list(self._text_value())
        if kind == "boolean":
            return [_to_bool(v) for v in codec.split_list(self._text_value()) if v.strip()]
        if kind == "float":
            return [_to_float(v) for v in codec.split_list(self._text_value()) if v.strip()]
        if kind == "binary":
            value = self.value
            if not isinstance(value, bytes):
                raise InvalidEncodingError(f"VALUE=binary needs ENCODING=B ({self.name})")
            return value
        raise UnsupportedError(f"value type {kind!r} is not supported")

    # --------------------------------------------------------
    # Mutation
    # --------------------------------------------------------
    def _mutate(self, group, name, params, value) -> None:
        """Builds the new line, parses it, and only then swaps the state."""
        if self._frozen:
            raise FrozenFieldError(f"{self.name} was decoded and is frozen, use copy()")
        line = _encode_line(group, name, params, value)
        try:
            state = _decode_state(line)
        except InvalidEncodingError as e:
            raise UnencodeableError(str(e)) from e
        self._state = state

    def set_group(self, group: str | None) -> None:
        s = self._state
        self._mutate(group, s.name, s.params, s.value)

    def set_value(self, value) -> None:
        """
        Replaces the value; accepted types as in create(). The existing
        ENCODING param is not re-applied, so a base64 field needs an
        already encoded value.
        """
        s = self._state
        self._mutate(s.group, s.name, s.params, value)

    def set_text(self, text: str) -> None:
        """TEXT-escapes `text`, then assigns it."""
        self.set_value(codec.encode_text(text))

    def set_param(self, pname: str, pvalues) -> None:
        """Replaces all values of param `pname` (a str or a list of str)."""
        if isinstance(pvalues, str) or not isinstance(pvalues, (list, tuple)):
            pvalues = [pvalues]
        params = dict(self._state.params)
        params[pname.upper()] = tuple(pvalues)
        s = self._state
        self._mutate(s.group, s.name, params, s.value)

    def add_param_value(self, pname: str, pvalue: str) -> tuple[str, ...]:
        """
        Adds `pvalue` to param `pname`. The values are a set, compared
        case-insensitively; adding a member again changes nothing.
        Returns the resulting values.
        """
        pname = pname.upper()
        current = self._state.params.get(pname, ())
        if any(v.upper() == pvalue.upper() for v in current):
            return current
        params = dict(self._state.params)
        params[pname] = current + (pvalue,)
        s = self._state
        self._mutate(s.group, s.name, params, s.value)
        return self._state.params[pname]

    def remove_param_value(self, pname: str, pvalue: str) -> tuple[str, ...]:
        """
        Removes `pvalue` from param `pname`, compared case-insensitively.
        Removing a non-member changes nothing. A param left without values
        is dropped. Returns the remaining values.
        """
        pname = pname.upper()
        current = self._state.params.get(pname, ())
        remaining = tuple(v for v in current if v.upper() != pvalue.upper())
        if remaining == current:
            return current
        params = dict(self._state.params)
        if remaining:
            params[pname] = remaining
        else:
            del params[pname]
        s = self._state
        self._mutate(s.group, s.name, params, s.value)
        return remaining

    def set_pref(self, pref: bool) -> None:
        """Marks or unmarks the field as preferred, see is_pref()."""
        if pref:
            self.add_param_value("TYPE", "PREF")
        else:
            self.remove_param_value("TYPE", "PREF")


# ============================================================
# Helpers for typed values
# ============================================================
def _to_datetime(parts, default_tz=None) -> datetime.datetime:
    try:
        if len(parts) == 3:
            return datetime.datetime(parts.year, parts.month, parts.day, tzinfo=default_tz)
        tzinfo = codec.parts_to_tzinfo(parts.tz)
        return datetime.datetime(parts.year, parts.month, parts.day,
                                 parts.hour, parts.minute, parts.second,
                                 min(int(round(parts.secfrac * 1_000_000)), 999_999), tzinfo=tzinfo)
    except ValueError as e:
        raise InvalidEncodingError(f"datetime{tuple(parts)} failed with {e}") from e


def _to_date(parts) -> datetime.date:
    try:
        return datetime.date(parts.year, parts.month, parts.day)
    except ValueError as e:
        raise InvalidEncodingError(f"date({parts.year}, {parts.month}, {parts.day}) failed with {e}") from e


def _to_bool(text: str) -> bool:
    t = text.strip().upper()
    if t == "TRUE":
        return True
    if t == "FALSE":
        return False
    raise InvalidEncodingError(f"boolean {text!r} not valid")


def _to_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError as e:
        raise InvalidEncodingError(f"float {text!r} not valid") from e
