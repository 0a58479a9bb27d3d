"""Tests for the feed merge engine (FETCH -> APPEND -> COMMIT)."""

import pytest
import requests

from conftest import FakeResponse
from rmlpub.pipeline.feed import FeedMergeEngine, if_match_value, media_type, merge_feed_body
from rmlpub.types import CommitError, ConflictError, FetchError, HttpTimeouts

FEED = "https://store.example.org/feed"
DELTA = "# delta\n<a> <b> <c> .\n"


class TestMergeFeedBody:
    @pytest.mark.parametrize("existing", ["line1", "line1\n", "line1\n\n", "line1\r\n", "line1\r\n\r\n"])
    def test_single_blank_line_and_trailing_newline(self, existing):
        merged = merge_feed_body(existing, DELTA)
        assert merged == "line1\n\n# delta\n<a> <b> <c> .\n"
        assert merged.endswith("\n") and not merged.endswith("\n\n")

    def test_line_endings_normalized(self):
        merged = merge_feed_body("a\r\nb\rc", "d\r\ne\r")
        assert "\r" not in merged
        assert merged == "a\nb\nc\n\nd\ne\n"

    def test_delta_trailing_newlines_collapsed(self):
        assert merge_feed_body("x\n", "y\n\n\n") == "x\n\ny\n"

    def test_delta_without_trailing_newline(self):
        assert merge_feed_body("x\n", "y") == "x\n\ny\n"

    def test_empty_existing_body(self):
        assert merge_feed_body("", DELTA) == "\n" + DELTA

    def test_empty_delta(self):
        assert merge_feed_body("x", "") == "x\n\n"

    def test_interior_blank_lines_preserved(self):
        assert merge_feed_body("a\n\n\nb\n", "c") == "a\n\n\nb\n\nc\n"


@pytest.mark.parametrize("etag, expected", [
    ('"v1"', '"v1"'),
    ('W/"v1"', None),
    (None, None),
])
def test_if_match_value(etag, expected):
    assert if_match_value(etag) == expected


def test_media_type_strips_parameters():
    assert media_type("application/trig; charset=utf-8") == "application/trig"
    assert media_type("") is None
    assert media_type(None) is None


class TestFeedMergeEngine:
    def test_round_trip_with_etag(self, session):
        session.queue("GET", FakeResponse(200, {"ETag": '"v1"', "Content-Type": "application/trig; charset=utf-8"}, "line1\n"))
        session.queue("PUT", FakeResponse(204))
        engine = FeedMergeEngine(session, bearer_token="secret", timeouts=HttpTimeouts(3, 9))

        result = engine.merge_into_feed(FEED, DELTA)

        assert session.methods() == ["GET", "PUT"]
        get_call, put_call = session.calls
        assert get_call["headers"] == {"Authorization": "Bearer secret"}
        assert "If-Match" not in get_call["headers"]
        assert get_call["timeout"] == (3, 9)

        assert put_call["url"] == FEED
        assert put_call["data"] == ("line1\n\n" + DELTA).encode("utf-8")
        assert put_call["headers"]["If-Match"] == '"v1"'
        assert put_call["headers"]["Content-Type"] == "application/trig"
        assert put_call["headers"]["Authorization"] == "Bearer secret"
        assert put_call["timeout"] == (3, 9)

        assert result.fetch_status == 200
        assert result.commit_status == 204
        assert result.etag_used == '"v1"'
        assert result.bytes_written == len(put_call["data"])

    def test_no_etag_means_unconditional_put_and_default_type(self, session):
        session.queue("GET", FakeResponse(200, {}, "x"))
        session.queue("PUT", FakeResponse(200))
        FeedMergeEngine(session).merge_into_feed(FEED, DELTA)

        put_headers = session.calls[1]["headers"]
        assert "If-Match" not in put_headers
        assert "Authorization" not in put_headers
        assert put_headers["Content-Type"] == "application/octet-stream"

    def test_weak_etag_is_not_sent_as_precondition(self, session):
        session.queue("GET", FakeResponse(200, {"ETag": 'W/"v7"'}, "x"))
        session.queue("PUT", FakeResponse(200))
        result = FeedMergeEngine(session).merge_into_feed(FEED, DELTA)

        assert "If-Match" not in session.calls[1]["headers"]
        assert result.etag_used is None

    @pytest.mark.parametrize("status", [301, 404, 500])
    def test_fetch_failure_skips_put(self, session, status):
        session.queue("GET", FakeResponse(status, {}, "nope"))
        with pytest.raises(FetchError) as excinfo:
            FeedMergeEngine(session).merge_into_feed(FEED, DELTA)

        assert excinfo.value.status_code == status
        assert excinfo.value.url == FEED
        assert session.methods() == ["GET"]

    def test_fetch_timeout_is_fetch_error(self, session):
        session.queue("GET", requests.Timeout("read timed out"))
        with pytest.raises(FetchError) as excinfo:
            FeedMergeEngine(session).merge_into_feed(FEED, DELTA)
        assert excinfo.value.status_code is None
        assert session.methods() == ["GET"]

    def test_precondition_failure_is_conflict(self, session):
        session.queue("GET", FakeResponse(200, {"ETag": "v1"}, "x"))
        session.queue("PUT", FakeResponse(412, {}, "etag mismatch"))
        with pytest.raises(ConflictError) as excinfo:
            FeedMergeEngine(session).merge_into_feed(FEED, DELTA)
        assert excinfo.value.status_code == 412
        assert session.methods() == ["GET", "PUT"]

    @pytest.mark.parametrize("status", [400, 409, 500])
    def test_other_put_failures_are_commit_errors(self, session, status):
        session.queue("GET", FakeResponse(200, {"ETag": "v1"}, "x"))
        session.queue("PUT", FakeResponse(status))
        with pytest.raises(CommitError) as excinfo:
            FeedMergeEngine(session).merge_into_feed(FEED, DELTA)
        assert not isinstance(excinfo.value, ConflictError)
        assert excinfo.value.status_code == status

    def test_commit_connection_error(self, session):
        session.queue("GET", FakeResponse(200, {}, "x"))
        session.queue("PUT", requests.ConnectionError("reset"))
        with pytest.raises(CommitError) as excinfo:
            FeedMergeEngine(session).merge_into_feed(FEED, DELTA)
        assert excinfo.value.status_code is None

    def test_blank_token_not_sent(self, session):
        session.queue("GET", FakeResponse(200, {}, "x"))
        session.queue("PUT", FakeResponse(200))
        FeedMergeEngine(session, bearer_token="  ").merge_into_feed(FEED, DELTA)
        assert "Authorization" not in session.calls[0]["headers"]
