from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .core import Tag

ACTION_NAMES = ("-exec", "-print", "-delete", "-download", "-ls", "-lstags", "-tags", "-public")


@dataclass(frozen=True)
class Exec:
    """Run ``utility`` through the shell for every matched key."""

    utility: str


@dataclass(frozen=True)
class Print:
    pass


@dataclass(frozen=True)
class Delete:
    pass


@dataclass(frozen=True)
class Download:
    destination: str
    force: bool = False  # overwrite files already present at the destination


@dataclass(frozen=True)
class Ls:
    pass


@dataclass(frozen=True)
class LsTags:
    pass


@dataclass(frozen=True)
class SetTags:
    tags: tuple[Tag, ...]

    def __post_init__(self) -> None:
        if not self.tags:
            raise ValueError("-tags requires at least one key:value pair")


@dataclass(frozen=True)
class Public:
    pass


Action = Union[Exec, Print, Delete, Download, Ls, LsTags, SetTags, Public]


def action_args(action: Action) -> list[str]:
    if isinstance(action, Exec):
        if action.utility.startswith("-"):
            return ["-exec", "--", action.utility]
        return ["-exec", action.utility]
    if isinstance(action, Print):
        return ["-print"]
    if isinstance(action, Delete):
        return ["-delete"]
    if isinstance(action, Download):
        args = ["-download"]
        if action.force:
            args.append("--force")
        if action.destination.startswith("-"):
            args.append("--")
        return args + [action.destination]
    if isinstance(action, Ls):
        return ["-ls"]
    if isinstance(action, LsTags):
        return ["-lstags"]
    if isinstance(action, SetTags):
        return ["-tags"] + [str(tag) for tag in action.tags]
    if isinstance(action, Public):
        return ["-public"]
    raise TypeError(f"unknown action: {action!r}")
