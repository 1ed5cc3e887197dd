"""Tests for repository url validation."""

import pytest

from git_tether.errors import InvalidURL, InvalidURLScheme
from git_tether.urls import parse_url


@pytest.mark.parametrize(
    ("raw", "private", "expected"),
    [
        ("example.com/r.git", False, "https://example.com/r.git"),
        ("example.com/r.git", True, "ssh://example.com/r.git"),
        ("https://example.com/r.git", True, "https://example.com/r.git"),
        ("http://example.com/r.git", False, "http://example.com/r.git"),
        ("ssh://git@example.com:2222/r.git", False, "ssh://git@example.com:2222/r.git"),
    ],
)
def test_parse_url_scheme_resolution(raw: str, private: bool, expected: str) -> None:
    """Verifies that missing schemes default to ssh for keys and https otherwise."""
    parsed = parse_url(raw, private)
    assert parsed.url == expected
    assert parsed.hostname == "example.com"


def test_parse_url_exposes_port() -> None:
    """Verifies that an explicit port is kept for host key scanning."""
    parsed = parse_url("ssh://git@example.com:2222/r.git", True)
    assert parsed.port == 2222

    assert parse_url("example.com/r.git", True).port is None


def test_parse_url_rejects_unknown_scheme() -> None:
    """Verifies that an unsupported scheme is reported by name."""
    with pytest.raises(InvalidURLScheme, match="ftp") as exc_info:
        parse_url("ftp://host/r.git", False)
    assert exc_info.value.scheme == "ftp"


def test_parse_url_host_port_without_scheme() -> None:
    """Verifies that a numeric port is accepted but an scp-style path is not."""
    assert parse_url("example.com:8080/r.git", False).port == 8080

    with pytest.raises(InvalidURL):
        parse_url("git@example.com:org/r.git", True)


@pytest.mark.parametrize("raw", ["", "   ", "https://", "https://[::1/r.git"])
def test_parse_url_reports_unparseable_input(raw: str) -> None:
    """Verifies that empty, hostless and malformed addresses raise InvalidURL."""
    with pytest.raises(InvalidURL):
        parse_url(raw, False)


def test_invalid_url_scheme_is_an_invalid_url() -> None:
    """Verifies the error hierarchy used by startup validation."""
    assert issubclass(InvalidURLScheme, InvalidURL)
