from __future__ import annotations


class FindError(ValueError):
    message = "Invalid argument"

    def __init__(self, value: str) -> None:
        super().__init__(f"{self.message}: {value!r}")
        self.value = value


class PathParseError(FindError):
    message = "Invalid s3 path"


class SizeParseError(FindError):
    message = "Invalid size parameter"


class TimeParseError(FindError):
    message = "Invalid mtime parameter"


class TagParseError(FindError):
    message = "Cannot parse tag"


class TagKeyParseError(TagParseError):
    message = "Cannot parse tag key"


class TagValueParseError(TagParseError):
    message = "Cannot parse tag value"


class RegionParseError(FindError):
    message = "Not a valid AWS region"


class GlobParseError(FindError):
    message = "Invalid glob pattern"
