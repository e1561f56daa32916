"""
Object Naming Tests
"""

import re

import pytest

from verbiforge.core.storage.namer import (
    DELIVERABLE_PREFIX,
    MAX_COMPONENT_BYTES,
    name_for,
    sanitize_filename,
    sanitize_owner_id,
)
from verbiforge.utils.validators import is_valid_handle

HANDLE_RE = re.compile(r"^proj-123_\d{13}-[0-9a-f]{6}_quote\.xlsx$")


def test_handle_format():
    handle = name_for("proj-123", "quote.xlsx", now=1_700_000_000.5)

    assert HANDLE_RE.match(handle)
    assert "_1700000000500-" in handle


def test_deliverable_prefix():
    handle = name_for("proj-123", "quote.xlsx", is_deliverable=True)

    assert handle.startswith(DELIVERABLE_PREFIX)
    assert HANDLE_RE.match(handle[len(DELIVERABLE_PREFIX):])


def test_same_millisecond_does_not_collide():
    handles = {name_for("proj-123", "quote.xlsx", now=1_700_000_000.0) for _ in range(50)}
    assert len(handles) == 50


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("../../etc/passwd", "passwd"),
        ("..\\..\\windows\\boot.ini", "boot.ini"),
        ("/absolute/path/report.xlsx", "report.xlsx"),
        ("dir/../sheet.xls", "sheet.xls"),
        (".hidden.csv", "hidden.csv"),
        ("bad<name>?.txt", "bad_name__.txt"),
        ("tab\tname.txt", "tab name.txt"),
        ("a..b.xlsx", "a_b.xlsx"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


@pytest.mark.parametrize("filename", [None, "", "..", "../..", "....", "/", "\\", "   ", "___"])
def test_empty_after_sanitizing_gets_placeholder(filename):
    assert re.fullmatch(r"file-[0-9a-f]{8}", sanitize_filename(filename))


def test_long_names_keep_extension():
    name = sanitize_filename("a" * 500 + ".xlsx")

    assert len(name.encode("utf-8")) <= MAX_COMPONENT_BYTES
    assert name.endswith(".xlsx")


@pytest.mark.parametrize("stem", ["翻訳" * 60, "é" * 200, "😀" * 80, "a" + "翻" * 100])
def test_multibyte_names_are_cut_by_bytes(stem):
    name = sanitize_filename(stem + ".xlsx")

    assert len(name.encode("utf-8")) <= MAX_COMPONENT_BYTES
    assert name.endswith(".xlsx")
    assert stem.startswith(name[: -len(".xlsx")])


def test_longest_handle_fits_filesystem_limit():
    handle = name_for("p" * 200, "翻訳" * 200 + ".xlsx", is_deliverable=True)

    assert len(handle.encode("utf-8")) <= 255
    assert is_valid_handle(handle)


def test_lone_surrogates_are_replaced():
    name = sanitize_filename("bad\udc80name.txt")

    assert name == "bad_name.txt"
    name.encode("utf-8")


def test_owner_id_is_sanitized():
    assert sanitize_owner_id("../x") == "x"
    assert sanitize_owner_id(42) == "42"
    assert sanitize_owner_id("a_b/c") == "a-b-c"
    assert re.fullmatch(r"owner-[0-9a-f]{8}", sanitize_owner_id(""))


@pytest.mark.parametrize(
    "owner, filename",
    [
        ("proj-1", "../../etc/passwd"),
        ("../../", "..\\x"),
        ("p", "\x00\x01.xlsx"),
        ("p", "." * 300),
    ],
)
def test_generated_handles_are_always_valid(owner, filename):
    handle = name_for(owner, filename)

    assert is_valid_handle(handle)
    assert "/" not in handle and "\\" not in handle and ".." not in handle
