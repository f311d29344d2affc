from __future__ import annotations

import re

import pytest

from s3find.actions import Download, SetTags
from s3find.core import (
    DEFAULT_REGION,
    FindOptions,
    FindSize,
    FindTime,
    S3Path,
    Tag,
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
from s3find.errors import (
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


def test_parse_path():
    assert parse_path("s3://testbucket/") == S3Path("testbucket", "")
    assert parse_path("s3://testbucket/path") == S3Path("testbucket", "path")
    assert parse_path("s3://testbucket") == S3Path("testbucket", None)
    assert parse_path("s3://testbucket/a/b").prefix == "a"


@pytest.mark.parametrize("url", ["testbucket", "s3://", "s3:/testbucket", "", "s3:", "gs://bucket"])
def test_parse_path_invalid(url):
    with pytest.raises(PathParseError) as exc:
        parse_path(url)
    assert exc.value.value == url
    assert "Invalid s3 path" in str(exc.value)


def test_s3path_str():
    assert str(S3Path("b")) == "s3://b"
    assert str(S3Path("b", "")) == "s3://b/"
    assert str(S3Path("b", "logs")) == "s3://b/logs"


def test_parse_size():
    assert parse_size("1111") == FindSize("equal", 1111)
    assert parse_size("1111k") == FindSize("equal", 1111 * 1024)
    assert parse_size("+1111") == FindSize("bigger", 1111)
    assert parse_size("+1111k") == FindSize("bigger", 1111 * 1024)
    assert parse_size("-1111") == FindSize("lower", 1111)
    assert parse_size("-1111k") == FindSize("lower", 1111 * 1024)
    assert parse_size("2M") == FindSize("equal", 2 * 1024**2)
    assert parse_size("3G").bytes == 3 * 1024**3
    assert parse_size("4T").bytes == 4 * 1024**4
    assert parse_size("5P").bytes == 5 * 1024**5


@pytest.mark.parametrize(
    "expr", ["", "-", "+", "-123w", "k", "+k", "1.5k", "10m", "abc", "10kk", "1 k"]
)
def test_parse_size_invalid(expr):
    with pytest.raises(SizeParseError):
        parse_size(expr)


def test_parse_size_overflow():
    with pytest.raises(SizeParseError):
        parse_size("9000000P")


def test_parse_time():
    assert parse_time("1111") == FindTime("upper", 1111)
    assert parse_time("10m") == FindTime("upper", 600)
    assert parse_time("+1111") == FindTime("upper", 1111)
    assert parse_time("+10m") == FindTime("upper", 600)
    assert parse_time("-10m") == FindTime("lower", 600)
    assert parse_time("-1111") == FindTime("lower", 1111)
    assert parse_time("5s").seconds == 5
    assert parse_time("2h").seconds == 7200
    assert parse_time("+3d").seconds == 3 * 86400
    assert parse_time("-1w").seconds == 604800


@pytest.mark.parametrize("expr", ["-", "+", "-10t", "+10t", "", "d", "10M"])
def test_parse_time_invalid(expr):
    with pytest.raises(TimeParseError):
        parse_time(expr)


def test_size_and_time_default_signs_differ():
    assert parse_size("10").kind == "equal"
    assert parse_time("10").kind == "upper"


@pytest.mark.parametrize("expr", ["1111", "+1111", "-1111", "0"])
def test_canonical_size_and_time_reparse(expr):
    size = parse_size(expr)
    assert parse_size(str(size)) == size
    mtime = parse_time(expr)
    assert parse_time(str(mtime)) == mtime


def test_parse_tag():
    tag = parse_tag("tag1:value2")
    assert tag == Tag("tag1", "value2")
    assert str(tag) == "tag1:value2"


def test_parse_tag_invalid():
    with pytest.raises(TagParseError) as exc:
        parse_tag("tag1value2")
    assert type(exc.value) is TagParseError

    with pytest.raises(TagValueParseError):
        parse_tag("tag1:value2:")
    with pytest.raises(TagKeyParseError):
        parse_tag(":")
    with pytest.raises(TagKeyParseError):
        parse_tag("a b:c")
    with pytest.raises(TagValueParseError):
        parse_tag("key:")


def test_tag_errors_share_base():
    for expr in ("x", ":v", "k:"):
        with pytest.raises(FindError):
            parse_tag(expr)
    assert issubclass(TagKeyParseError, TagParseError)
    assert issubclass(TagParseError, ValueError)


def test_patterns():
    glob = parse_glob("*.txt")
    assert glob.kind == "glob"
    assert glob.matches("logs/a.txt")
    assert not glob.matches("a.TXT")

    iglob = parse_iglob("*.txt")
    assert iglob.kind == "iglob"
    assert iglob.matches("a.TXT")
    assert iglob != glob

    regex = parse_regex(r"\d{4}-\d{2}")
    assert regex.kind == "regex"
    assert regex.matches("backup-2020-01.tar")
    assert not regex.matches("backup.tar")


def test_pattern_equality_ignores_compiled():
    assert parse_glob("a*") == parse_glob("a*")
    assert parse_regex("a+") == parse_regex("a+")


@pytest.mark.parametrize("expr", ["[abc", "***", "a**b", "**b", "a**", "[!", "x/****/y"])
def test_parse_glob_invalid(expr):
    with pytest.raises(GlobParseError):
        parse_glob(expr)
    with pytest.raises(GlobParseError):
        parse_iglob(expr)


@pytest.mark.parametrize(
    "expr", ["**", "a/**/b", "**/*.txt", "logs/**", "[]]", "[!]a]", "[a-z]*", "*"]
)
def test_parse_glob_valid(expr):
    assert parse_glob(expr).pattern == expr


def test_parse_regex_invalid():
    with pytest.raises(re.error):
        parse_regex("(unclosed")


def test_parse_region():
    assert parse_region("eu-west-1") == "eu-west-1"
    assert parse_region("US-EAST-2") == "us-east-2"
    with pytest.raises(RegionParseError):
        parse_region("moon-base")


@pytest.mark.parametrize(
    "region",
    ["me-south-1", "af-south-1", "ap-southeast-3", "eu-south-1", "il-central-1", "ca-west-1"],
)
def test_parse_region_newer_regions(region):
    assert parse_region(region) == region


@pytest.mark.parametrize(
    "region", ["nowhere", "us_east_1", "", "us-east", "1-east-1", "us-east-1 "]
)
def test_parse_region_invalid(region):
    with pytest.raises(RegionParseError):
        parse_region(region)


def test_find_options_defaults():
    opts = FindOptions(path=S3Path("bucket"))
    assert opts.name == () and opts.size == () and opts.mtime == ()
    assert opts.cmd is None
    assert opts.region == DEFAULT_REGION
    assert opts.patterns == ()


def test_find_options_credentials_paired():
    FindOptions(path=S3Path("b"), aws_access_key="k", aws_secret_key="s")
    with pytest.raises(ValueError):
        FindOptions(path=S3Path("b"), aws_access_key="k")
    with pytest.raises(ValueError):
        FindOptions(path=S3Path("b"), aws_secret_key="s")


def test_format_options():
    opts = FindOptions(
        path=S3Path("bucket", "logs"),
        aws_region="eu-west-1",
        name=(parse_glob("*.gz"),),
        regex=(parse_regex("^a"),),
        mtime=(parse_time("-1d"),),
        size=(parse_size("+1k"), parse_size("-1M")),
        cmd=Download(destination="/tmp/out", force=True),
    )
    assert format_options(opts) == [
        "s3://bucket/logs",
        "--aws-region",
        "eu-west-1",
        "--name",
        "*.gz",
        "--regex",
        "^a",
        "--mtime",
        "-86400",
        "--size",
        "+1024",
        "--size",
        "-1048576",
        "-download",
        "--force",
        "/tmp/out",
    ]


def test_format_options_tags():
    opts = FindOptions(path=S3Path("b"), cmd=SetTags((Tag("a", "1"), Tag("b", "2"))))
    assert format_options(opts) == ["s3://b", "-tags", "a:1", "b:2"]
