"""Calendar versioning (https://calver.org) formats and versions.

A format is a sequence of tokens joined by `.`, `_` or `-`:

- year, always first: ``YYYY`` (2006), ``YY`` (6, 16, 106), ``0Y`` (06, 16, 106)
- then month (``MM``, ``0M``) with an optional day (``DD``, ``0D``),
  or week (``WW``, ``0W``); weeks never mix with months or days
- then ``MINOR`` and/or ``MICRO`` counters
- then ``MODIFIER``, or ``[-MODIFIER]`` when the modifier is optional

Example: ``CalVer.of("YYYY.0M.MICRO[-MODIFIER]", "2024.03.2-rc1")``.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from functools import total_ordering

YEAR = "YEAR"
MONTH = "MONTH"
WEEK = "WEEK"
DAY = "DAY"
MINOR = "MINOR"
MICRO = "MICRO"
MODIFIER = "MODIFIER"

_YEARS = ("YYYY", "YY", "0Y")
_MONTHS = ("MM", "0M")
_WEEKS = ("WW", "0W")
_DAYS = ("DD", "0D")
_NUMBERS = (MINOR, MICRO)
_OPTIONAL_MODIFIER = "[MODIFIER]"

_PATTERNS: dict[str, str] = {
    "YYYY": r"([2-9][0-9]{3})",
    "YY": r"([1-9]|[1-9][0-9]|[1-9][0-9]{2})",
    "0Y": r"(0[1-9]|[1-9][0-9]|[1-9][0-9]{2})",
    "MM": r"([1-9]|1[0-2])",
    "0M": r"(0[1-9]|1[0-2])",
    "WW": r"([1-9]|[1-4][0-9]|5[0-2])",
    "0W": r"(0[1-9]|[1-4][0-9]|5[0-2])",
    "DD": r"([1-9]|[1-2][0-9]|3[0-1])",
    "0D": r"(0[1-9]|[1-2][0-9]|3[0-1])",
    MINOR: r"(0|[1-9]\d*)",
    MICRO: r"(0|[1-9]\d*)",
    MODIFIER: r"([a-zA-Z\-][0-9a-zA-Z\-]*)",
    _OPTIONAL_MODIFIER: r"([a-zA-Z\-][0-9a-zA-Z\-]*))?",
}

# Placeholder values used to build the smallest version matching a format.
_DEFAULTS: tuple[tuple[str, str], ...] = (
    ("YYYY", "2000"),
    ("YY", "0"),
    ("0Y", "0"),
    ("MM", "1"),
    ("0M", "01"),
    ("WW", "1"),
    ("0W", "01"),
    ("DD", "1"),
    ("0D", "01"),
    (MINOR, "0"),
    (MICRO, "0"),
    (MODIFIER, "A"),
    ("[", ""),
    ("]", ""),
)

_DELIMITERS = (".", "_", "-", "[")


class CalVerFormatError(ValueError):
    pass


@dataclass(slots=True)
class _Take:
    token: str
    sep: str


def _take(text: str, index: int, delims: tuple[str, ...]) -> _Take:
    """Read a token starting at `index` up to the next delimiter."""

    buf: list[str] = []
    for i in range(index, len(text)):
        c = text[i]
        if c in delims:
            if c == "[" and len(text) > i + 1:
                c = text[i + 1]
            return _Take("".join(buf), re.escape(c) if c == "." else c)
        buf.append(c)
    return _Take("".join(buf), "")


@dataclass(slots=True)
class _Tokens:
    """Result of tokenizing a format string."""

    fmt: str
    tokens: list[str] = field(default_factory=list)
    year: str | None = None
    month: str | None = None
    week: str | None = None
    day: str | None = None
    minor: str | None = None
    micro: str | None = None
    modifier: str | None = None

    def push(self, token: str, sep: str) -> None:
        self.tokens.append(token)
        if sep:
            self.tokens.append(sep)


def tokenize(fmt: str) -> _Tokens:
    """Split a CalVer format into regex-ready tokens.

    Raises:
        CalVerFormatError: If the format violates the token ordering rules.
    """

    fmt = fmt.strip()
    result = _Tokens(fmt=fmt)

    cur = _take(fmt, 0, _DELIMITERS)
    if cur.token not in _YEARS:
        raise CalVerFormatError(f"Format {fmt!r} must start with a year token (YYYY, YY, 0Y)")
    result.year = cur.token
    result.push(cur.token, cur.sep)
    i = len(cur.token) + 1

    cur = _take(fmt, i, _DELIMITERS)
    if cur.token in _MONTHS:
        if any(w in fmt for w in _WEEKS):
            raise CalVerFormatError(f"Format {fmt!r} cannot mix months and weeks")
        result.month = cur.token
        result.push(cur.token, cur.sep)
        i += len(cur.token) + 1
        cur = _take(fmt, i, _DELIMITERS)
        if cur.token in _DAYS:
            result.day = cur.token
            result.push(cur.token, cur.sep)
            i += len(cur.token) + 1
            cur = _take(fmt, i, _DELIMITERS)
    elif cur.token in _WEEKS:
        if any(m in fmt for m in _MONTHS):
            raise CalVerFormatError(f"Format {fmt!r} cannot mix weeks and months")
        if any(d in fmt for d in _DAYS):
            raise CalVerFormatError(f"Format {fmt!r} cannot mix weeks and days")
        result.week = cur.token
        result.push(cur.token, cur.sep)
        i += len(cur.token) + 1
        cur = _take(fmt, i, _DELIMITERS)

    if cur.token in _NUMBERS:
        result.push(cur.token, cur.sep)
        i += len(cur.token) + 1
        seen_micro = cur.token == MICRO
        if seen_micro:
            result.micro = cur.token
        else:
            result.minor = cur.token

        cur = _take(fmt, i, _DELIMITERS)
        if cur.token in _NUMBERS:
            if seen_micro:
                if cur.token == MICRO:
                    raise CalVerFormatError(f"Format {fmt!r} has MICRO more than once")
                raise CalVerFormatError(f"Format {fmt!r} has MINOR after MICRO")
            if cur.token == MINOR:
                raise CalVerFormatError(f"Format {fmt!r} has MINOR more than once")
            result.push(cur.token, cur.sep)
            result.micro = cur.token
            i += len(cur.token) + 1

    # Whatever is left is the modifier, e.g. "MODIFIER" or "-MODIFIER]".
    rest = _take(fmt, i, ())
    if rest.token:
        result.modifier = rest.token
        result.tokens.append(rest.token)

    if result.tokens[-1].endswith("MODIFIER]"):
        sep = result.tokens.pop(-2)
        result.tokens[-1] = "(?:" + sep + _PATTERNS[_OPTIONAL_MODIFIER]

    return result


def _as_int(value: str | None) -> int:
    return -1 if value is None else int(value)


@total_ordering
class CalVer:
    """A version parsed against a calendar versioning format."""

    __slots__ = ("pattern", "year", "month", "week", "day", "minor", "micro", "modifier")

    def __init__(self, pattern: str, elements: dict[str, str | None]) -> None:
        def clean(key: str) -> str | None:
            value = elements.get(key)
            return value.strip() if value and value.strip() else None

        self.pattern = pattern
        self.year = clean(YEAR)
        self.month = clean(MONTH)
        self.week = clean(WEEK)
        self.day = clean(DAY)
        self.minor = clean(MINOR)
        self.micro = clean(MICRO)
        self.modifier = clean(MODIFIER)

        if self.year is not None and self.month is not None and self.day is not None:
            days = calendar.monthrange(self.year_as_int, self.month_as_int)[1]
            if self.day_as_int > days:
                raise ValueError(f"Version {self} is not a valid date")

    @classmethod
    def of(cls, fmt: str, version: str) -> CalVer:
        """Parse `version` against `fmt`.

        Raises:
            ValueError: If either argument is blank or the version does not match.
        """

        if not fmt or not fmt.strip():
            raise ValueError("Argument 'fmt' must not be blank")
        if not version or not version.strip():
            raise ValueError("Argument 'version' must not be blank")

        tokens = tokenize(fmt)
        regex = re.compile("^" + "".join(_PATTERNS.get(t, t) for t in tokens.tokens) + "$")
        match = regex.match(version.strip())
        if match is None:
            raise ValueError(f"Version {version!r} does not match format {tokens.fmt!r}")

        groups = iter(match.groups())
        elements: dict[str, str | None] = {YEAR: next(groups)}
        if tokens.week:
            elements[WEEK] = next(groups)
        if tokens.month:
            elements[MONTH] = next(groups)
        if tokens.day:
            elements[DAY] = next(groups)
        if tokens.minor:
            elements[MINOR] = next(groups)
        if tokens.micro:
            elements[MICRO] = next(groups)
        rest = list(groups)
        if rest:
            elements[MODIFIER] = rest[-1]
        return cls(fmt, elements)

    @classmethod
    def default_of(cls, fmt: str) -> CalVer:
        """The smallest version matching `fmt`."""

        if not fmt or not fmt.strip():
            raise ValueError("Argument 'fmt' must not be blank")
        version = fmt
        for token, value in _DEFAULTS:
            version = version.replace(token, value)
        return cls.of(fmt, version)

    @property
    def year_as_int(self) -> int:
        return _as_int(self.year)

    @property
    def month_as_int(self) -> int:
        return _as_int(self.month)

    @property
    def week_as_int(self) -> int:
        return _as_int(self.week)

    @property
    def day_as_int(self) -> int:
        return _as_int(self.day)

    @property
    def minor_as_int(self) -> int:
        return _as_int(self.minor)

    @property
    def micro_as_int(self) -> int:
        return _as_int(self.micro)

    def _key(self) -> tuple[str | None, ...]:
        return (
            self.pattern,
            self.year,
            self.month,
            self.week,
            self.day,
            self.minor,
            self.micro,
            self.modifier,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CalVer):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def compare(self, other: CalVer) -> int:
        if self.pattern != other.pattern:
            return -1 if self.pattern < other.pattern else 1

        result = self.year_as_int - max(other.year_as_int, 0)
        pairs = (
            (self.month, self.month_as_int, other.month_as_int),
            (self.week, self.week_as_int, other.week_as_int),
            (self.day, self.day_as_int, other.day_as_int),
            (self.minor, self.minor_as_int, other.minor_as_int),
            (self.micro, self.micro_as_int, other.micro_as_int),
        )
        for present, mine, theirs in pairs:
            if result != 0:
                break
            if present is not None:
                result = mine - max(theirs, 0)

        if result == 0 and self.modifier is not None:
            if other.modifier is None:
                result = -1
            elif self.modifier != other.modifier:
                result = -1 if self.modifier < other.modifier else 1
        return result

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CalVer):
            return NotImplemented
        return self.compare(other) < 0

    def __str__(self) -> str:
        text = self.pattern
        if self.modifier is None:
            text = re.sub(r"\[[^\]]*MODIFIER\]", "", text)
        replacements = (
            ("YYYY", self.year),
            ("YY", self.year),
            ("0Y", self.year),
            ("MM", self.month),
            ("0M", self.month),
            ("WW", self.week),
            ("0W", self.week),
            ("DD", self.day),
            ("0D", self.day),
            (MINOR, self.minor),
            (MICRO, self.micro),
            (MODIFIER, self.modifier),
            ("[", ""),
            ("]", ""),
        )
        for token, value in replacements:
            if value is not None:
                text = text.replace(token, value)
        return text

    def __repr__(self) -> str:
        return f"CalVer({self.pattern!r}, {str(self)!r})"

    def to_rpm_version(self) -> str:
        return str(self).replace("-", "_")

    def equals_spec(self, other: CalVer) -> bool:
        return self.pattern == other.pattern
