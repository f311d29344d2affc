from __future__ import annotations

import argparse
import contextlib
import re
import shlex
import sys
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from .actions import (
    ACTION_NAMES,
    Action,
    Delete,
    Download,
    Exec,
    Ls,
    LsTags,
    Print,
    Public,
    SetTags,
)
from .core import (
    DEFAULT_REGION,
    FindOptions,
    format_options,
    parse_glob,
    parse_iglob,
    parse_path,
    parse_regex,
    parse_region,
    parse_size,
    parse_tag,
    parse_time,
)
from .errors import FindError

VERSION = "s3find 0.1.0"

T = TypeVar("T")

# Flags whose value may start with "-" (e.g. --size -5k).
_VALUE_FLAGS = frozenset(
    {
        "--aws-access-key",
        "--aws-secret-key",
        "--aws-region",
        "--name",
        "--iname",
        "--regex",
        "--mtime",
        "--size",
    }
)

MTIME_HELP = """Modification time for match, a time period:
    +5d - for period from now-5d to now
    -5d - for period before now-5d
Units: s (seconds), m (minutes), h (hours), d (days), w (weeks). Can repeat."""

SIZE_HELP = """File size for match:
    5k - exact match 5k, +5k - bigger than 5k, -5k - smaller than 5k
Units: k, M, G, T, P (powers of 1024). Can repeat."""

ACTIONS_EPILOG = """actions (at most one, after all options):
  -exec <utility>               run a shell utility for every matched key
  -print                        extended print with detail information
  -delete                       delete matched keys
  -download [-f] <destination>  download matched keys
  -ls                           print the list of matched keys
  -lstags                       print the list of matched keys with tags
  -tags <key:value>...          set (overwrite) tags on matched keys
  -public                       make matched keys publicly readable"""


def eprint(*args: Any, **kwargs: Any) -> None:
    print(*args, file=sys.stderr, **kwargs)


@dataclass
class Debug:
    enabled: bool = False

    def log(self, cat: str, msg: str) -> None:
        if self.enabled:
            eprint(f"[DEBUG:{cat}] {msg}")


class OptionError(Exception):
    """A field failed to parse; ``error`` is the underlying parser error."""

    def __init__(self, flag: str, error: Exception) -> None:
        super().__init__(f"invalid {flag}: {error}")
        self.flag = flag
        self.error = error


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="s3find",
        description="Walk an s3 path hierarchy and act on the matching keys.",
        epilog=ACTIONS_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    p.add_argument("path", help="S3 path to walk through. It should be s3://bucket/path")
    p.add_argument("--aws-access-key", dest="aws_access_key", help="AWS access key. Unrequired")
    p.add_argument("--aws-secret-key", dest="aws_secret_key", help="AWS secret key. Unrequired")
    p.add_argument(
        "--aws-region",
        dest="aws_region",
        help=f"The region to use. Default value is {DEFAULT_REGION}",
    )
    p.add_argument(
        "--name",
        action="append",
        default=[],
        help="Glob pattern for match, can be multiple",
    )
    p.add_argument(
        "--iname",
        action="append",
        default=[],
        help="Case-insensitive glob pattern for match, can be multiple",
    )
    p.add_argument(
        "--regex",
        action="append",
        default=[],
        help="Regex pattern for match, can be multiple",
    )
    p.add_argument("--mtime", action="append", default=[], metavar="TIME", help=MTIME_HELP)
    p.add_argument("--size", action="append", default=[], metavar="SIZE", help=SIZE_HELP)
    p.add_argument("-D", "--debug", action="store_true", help="Print parsed fields to stderr")
    p.add_argument("--version", action="version", version=VERSION)
    return p


def build_action_parser(name: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=f"s3find {name}", allow_abbrev=False)
    if name == "-exec":
        p.add_argument("utility", help="Utility(program) to run")
    elif name == "-download":
        p.add_argument(
            "-f",
            "--force",
            action="store_true",
            help="Overwrite the target files even if they are already present",
        )
        p.add_argument("destination", help="Directory destination to download files to")
    elif name == "-tags":
        p.add_argument("tags", nargs="+", metavar="key:value", help="List of the tags to set")
    elif name not in ACTION_NAMES:
        raise ValueError(f"unknown action: {name}")
    return p


def split_argv(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv into the option part and the trailing action part.

    Values of flags in ``_VALUE_FLAGS`` are glued to their flag so argparse
    keeps hyphen-leading values and action names used as values.
    """
    head: list[str] = []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok == "--":
            return head + list(argv[i:]), []
        if tok in ACTION_NAMES:
            return head, list(argv[i:])
        if tok in _VALUE_FLAGS and i + 1 < len(argv):
            head.append(f"{tok}={argv[i + 1]}")
            i += 2
            continue
        head.append(tok)
        i += 1
    return head, []


def _convert(
    flag: str,
    values: Sequence[str],
    parse: Callable[[str], T],
    debug: Debug,
) -> Iterator[T]:
    for raw in values:
        try:
            value = parse(raw)
        except (FindError, re.error) as e:
            raise OptionError(flag, e) from e
        debug.log("parse", f"{flag} {raw!r} -> {value!r}")
        yield value


def parse_action(tokens: Sequence[str], debug: Debug | None = None) -> Action:
    debug = debug or Debug()
    name, rest = tokens[0], list(tokens[1:])
    ns = build_action_parser(name).parse_args(rest)

    action: Action
    if name == "-exec":
        action = Exec(utility=ns.utility)
    elif name == "-print":
        action = Print()
    elif name == "-delete":
        action = Delete()
    elif name == "-download":
        action = Download(destination=ns.destination, force=ns.force)
    elif name == "-ls":
        action = Ls()
    elif name == "-lstags":
        action = LsTags()
    elif name == "-tags":
        action = SetTags(tags=tuple(_convert("-tags", ns.tags, parse_tag, debug)))
    else:
        action = Public()
    debug.log("parse", f"action {action!r}")
    return action


def parse_options(argv: Sequence[str]) -> FindOptions:
    head, tail = split_argv(argv)
    p = build_parser()
    ns = p.parse_args(head)
    debug = Debug(enabled=ns.debug)

    if (ns.aws_access_key is None) != (ns.aws_secret_key is None):
        p.error("--aws-access-key and --aws-secret-key must be given together")

    (path,) = _convert("path", [ns.path], parse_path, debug)
    region = None
    if ns.aws_region is not None:
        (region,) = _convert("--aws-region", [ns.aws_region], parse_region, debug)

    return FindOptions(
        path=path,
        aws_access_key=ns.aws_access_key,
        aws_secret_key=ns.aws_secret_key,
        aws_region=region,
        name=tuple(_convert("--name", ns.name, parse_glob, debug)),
        iname=tuple(_convert("--iname", ns.iname, parse_iglob, debug)),
        regex=tuple(_convert("--regex", ns.regex, parse_regex, debug)),
        mtime=tuple(_convert("--mtime", ns.mtime, parse_time, debug)),
        size=tuple(_convert("--size", ns.size, parse_size, debug)),
        cmd=parse_action(tail, debug) if tail else None,
    )


def main(
    argv: Sequence[str] | None = None,
    run: Callable[[FindOptions], int] | None = None,
) -> int:
    if argv is None:
        argv = sys.argv[1:]

    try:
        opts = parse_options(argv)
    except OptionError as e:
        eprint(f"s3find: {e}")
        return 2

    if run is not None:
        return run(opts)

    try:
        sys.stdout.write(shlex.join(format_options(opts)) + "\n")
        sys.stdout.flush()
    except BrokenPipeError:
        with contextlib.suppress(Exception):
            sys.stdout.close()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
