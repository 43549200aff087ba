import pytest

from kanekfs.text import trim


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  hello  ", "hello"),
        ("\t a b \n", "a b"),
        ("key = value\r\n", "key = value"),
        ("\v\fword", "word"),
        ("x", "x"),
        ("   ", ""),
        ("", ""),
    ],
)
def test_trim(raw, expected):
    assert trim(raw) == expected


def test_inner_whitespace_kept():
    assert trim("  a  b  ") == "a  b"


def test_non_ascii_space_kept():
    assert trim("\u00a0x ") == "\u00a0x"


def test_trim_is_idempotent():
    once = trim("  \tvalue\n ")
    assert trim(once) == once