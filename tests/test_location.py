"""Tests for Location header resolution."""

import pytest

from conftest import FakeResponse
from rmlpub.pipeline.location import first_header, resolve_location


def test_missing_header_returns_none():
    assert resolve_location(FakeResponse(201), "https://store/api/upload") is None


@pytest.mark.parametrize("value", ["", "   "])
def test_blank_header_returns_none(value):
    response = FakeResponse(201, {"Location": value})
    assert resolve_location(response, "https://store/api/upload") is None


def test_relative_reference_resolved_against_request():
    response = FakeResponse(201, {"Location": "b"})
    assert resolve_location(response, "https://x/a/") == "https://x/a/b"


def test_root_relative_reference():
    response = FakeResponse(201, {"Location": "/datasets/42"})
    assert resolve_location(response, "https://store/api/upload") == "https://store/datasets/42"


def test_absolute_reference_unchanged():
    response = FakeResponse(201, {"Location": "https://other.example.org/d/1"})
    assert resolve_location(response, "https://store/api/upload") == "https://other.example.org/d/1"


def test_surrounding_whitespace_trimmed():
    response = FakeResponse(201, {"Location": "  /datasets/7 \t"})
    assert resolve_location(response, "https://store/api/upload") == "https://store/datasets/7"


class _PlainHeaders:
    def __init__(self, headers):
        self.headers = headers


def test_plain_mapping_matched_case_insensitively():
    response = _PlainHeaders({"LOCATION": "/x"})
    assert resolve_location(response, "https://store/api/") == "https://store/x"


def test_first_header_takes_first_of_list():
    assert first_header({"location": ["/a", "/b"]}, "Location") == "/a"
    assert first_header({"location": []}, "Location") is None
    assert first_header(None, "Location") is None
