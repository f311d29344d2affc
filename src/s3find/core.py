from __future__ import annotations

import fnmatch
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from .actions import Action, action_args
from .errors import (
    FindError,
    GlobParseError,
    PathParseError,
    RegionParseError,
    SizeParseError,
    TagKeyParseError,
    TagParseError,
    TagValueParseError,
    TimeParseError,
)

SizeKind = Literal["equal", "bigger", "lower"]
TimeKind = Literal["upper", "lower"]
PatternKind = Literal["glob", "iglob", "regex"]

I64_MAX = 2**63 - 1

DEFAULT_REGION = "us-east-1"

# partition-geo-N, e.g. us-east-1, us-gov-west-1, us-isob-east-1
_REGION = re.compile(r"[a-z]{2}(?:-[a-z]+)+-\d+")

_SIZE_UNITS = {"": 1, "k": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4, "P": 1024**5}
_TIME_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}

_WORD = re.compile(r"\w+")


@dataclass(frozen=True)
class S3Path:
    bucket: str
    prefix: str | None = None

    def __str__(self) -> str:
        if self.prefix is None:
            return f"s3://{self.bucket}"
        return f"s3://{self.bucket}/{self.prefix}"


@dataclass(frozen=True)
class FindSize:
    kind: SizeKind
    bytes: int

    def __str__(self) -> str:
        return _SIGNS[self.kind] + str(self.bytes)


@dataclass(frozen=True)
class FindTime:
    """Modification-time filter.

    ``upper`` matches objects modified within the last ``seconds``,
    ``lower`` matches objects modified more than ``seconds`` ago.
    """

    kind: TimeKind
    seconds: int

    def __str__(self) -> str:
        return _SIGNS[self.kind] + str(self.seconds)


_SIGNS = {"equal": "", "bigger": "+", "lower": "-", "upper": "+"}


@dataclass(frozen=True)
class Tag:
    key: str
    value: str

    def __str__(self) -> str:
        return f"{self.key}:{self.value}"


@dataclass(frozen=True)
class NamePattern:
    kind: PatternKind
    pattern: str
    compiled: re.Pattern[str] = field(repr=False, compare=False)

    def matches(self, key: str) -> bool:
        if self.kind == "regex":
            return self.compiled.search(key) is not None
        return self.compiled.match(key) is not None


@dataclass(frozen=True)
class FindOptions:
    path: S3Path
    aws_access_key: str | None = None
    aws_secret_key: str | None = None
    aws_region: str | None = None
    name: tuple[NamePattern, ...] = ()
    iname: tuple[NamePattern, ...] = ()
    regex: tuple[NamePattern, ...] = ()
    mtime: tuple[FindTime, ...] = ()
    size: tuple[FindSize, ...] = ()
    cmd: Action | None = None

    def __post_init__(self) -> None:
        if (self.aws_access_key is None) != (self.aws_secret_key is None):
            raise ValueError("aws_access_key and aws_secret_key must be given together")

    @property
    def region(self) -> str:
        return self.aws_region or DEFAULT_REGION

    @property
    def patterns(self) -> tuple[NamePattern, ...]:
        return self.name + self.iname + self.regex


def parse_path(text: str) -> S3Path:
    parts = text.split("/")
    bucket = parts[2] if len(parts) > 2 else ""
    prefix = parts[3] if len(parts) > 3 else None

    if parts[0] != "s3:" or len(parts) < 2 or parts[1] != "" or not bucket:
        raise PathParseError(text)
    return S3Path(bucket=bucket, prefix=prefix)


def _parse_amount(text: str, units: Mapping[str, int], error: type[FindError]) -> tuple[str, int]:
    # [sign]digits[unit] -> (sign, digits * multiplier)
    sign = ""
    rest = text
    if rest[:1] in ("+", "-"):
        sign, rest = rest[0], rest[1:]

    unit = ""
    if rest and not rest[-1].isdigit():
        unit, rest = rest[-1], rest[:-1]
    if unit not in units:
        raise error(text)

    if not rest or not (rest.isascii() and rest.isdigit()):
        raise error(text)

    amount = int(rest) * units[unit]
    if amount > I64_MAX:
        raise error(text)
    return sign, amount


def parse_size(text: str) -> FindSize:
    sign, amount = _parse_amount(text, _SIZE_UNITS, SizeParseError)
    if sign == "+":
        return FindSize("bigger", amount)
    if sign == "-":
        return FindSize("lower", amount)
    return FindSize("equal", amount)


def parse_time(text: str) -> FindTime:
    sign, amount = _parse_amount(text, _TIME_UNITS, TimeParseError)
    if sign == "-":
        return FindTime("lower", amount)
    return FindTime("upper", amount)


def parse_tag(text: str) -> Tag:
    key, sep, value = text.partition(":")
    if not sep:
        raise TagParseError(text)
    if not _WORD.fullmatch(key):
        raise TagKeyParseError(text)
    if not _WORD.fullmatch(value):
        raise TagValueParseError(text)
    return Tag(key=key, value=value)


def _check_glob(text: str) -> None:
    # Reject what fnmatch would silently treat as literals or plain "*".
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "*":
            j = i
            while j < len(text) and text[j] == "*":
                j += 1
            if j - i > 2:
                raise GlobParseError(text)
            if j - i == 2:
                # "**" must be a whole path segment
                before, after = text[i - 1 : i], text[j : j + 1]
                if before not in ("", "/") or after not in ("", "/"):
                    raise GlobParseError(text)
            i = j
        elif ch == "[":
            j = i + 1
            if text[j : j + 1] == "!":
                j += 1
            if text[j : j + 1] == "]":
                j += 1
            close = text.find("]", j)
            if close < 0:
                raise GlobParseError(text)
            i = close + 1
        else:
            i += 1


def parse_glob(text: str) -> NamePattern:
    _check_glob(text)
    return NamePattern("glob", text, re.compile(fnmatch.translate(text)))


def parse_iglob(text: str) -> NamePattern:
    _check_glob(text)
    return NamePattern("iglob", text, re.compile(fnmatch.translate(text), re.IGNORECASE))


def parse_regex(text: str) -> NamePattern:
    return NamePattern("regex", text, re.compile(text))


def parse_region(text: str) -> str:
    region = text.lower()
    if not _REGION.fullmatch(region):
        raise RegionParseError(text)
    return region


def format_options(opts: FindOptions) -> list[str]:
    """Render ``opts`` as an argv list that parses back to an equal value."""
    argv = [str(opts.path)]
    if opts.aws_access_key is not None and opts.aws_secret_key is not None:
        argv += ["--aws-access-key", opts.aws_access_key]
        argv += ["--aws-secret-key", opts.aws_secret_key]
    if opts.aws_region is not None:
        argv += ["--aws-region", opts.aws_region]
    for pattern in opts.name:
        argv += ["--name", pattern.pattern]
    for pattern in opts.iname:
        argv += ["--iname", pattern.pattern]
    for pattern in opts.regex:
        argv += ["--regex", pattern.pattern]
    for mtime in opts.mtime:
        argv += ["--mtime", str(mtime)]
    for size in opts.size:
        argv += ["--size", str(size)]
    if opts.cmd is not None:
        argv += action_args(opts.cmd)
    return argv
