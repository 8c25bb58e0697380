import pytest

from conciergewatch.normalize import DESC_FINGERPRINT_CHARS, cap_text, clean_text, snippet


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "plain",
        "  $50   reward\n\tposted by  alice : table for 2 ",
        "a b c",
        "x" * 500,
    ],
)
def test_clean_text_is_idempotent(raw):
    once = clean_text(raw)
    assert clean_text(once) == once


def test_clean_text_collapses_and_trims():
    assert clean_text("  a \n\n b\t c  ") == "a b c"
    assert clean_text(None) == ""


def test_cap_text_limits_length_without_trailing_space():
    text = ("word " * 100).strip()
    capped = cap_text(text)
    assert len(capped) <= DESC_FINGERPRINT_CHARS
    assert capped == capped.strip()
    assert cap_text("short") == "short"


def test_snippet_marks_truncation():
    assert snippet("abcdef", 3) == "abc…"
    assert snippet("abc", 3) == "abc"
