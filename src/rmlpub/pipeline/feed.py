"""
Feed merge engine: read-modify-write of the activity feed resource.

One call runs FETCH -> APPEND -> COMMIT:
  FETCH   unconditional GET of the feed; non-2xx or transport failure raises FetchError
  APPEND  newline-normalized concatenation, exactly one blank line before the delta
  COMMIT  PUT of the merged body, conditional on the GET's ETag when a strong one was returned;
          412 raises ConflictError, any other failure raises CommitError

Nothing is retried here. Re-running after a conflict means fetching again,
which is the caller's decision.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from ..domain.enums import DEFAULT_CONTENT_TYPE
from ..types import (
    CommitError,
    ConflictError,
    FeedSnapshot,
    FeedUpdateResult,
    FetchError,
    HttpTimeouts,
)
from .location import first_header

logger = logging.getLogger(__name__)

# If-Match uses strong comparison, so a weak validator (W/"...") can never match.
PRECONDITION_FAILED = 412
WEAK_ETAG_PREFIX = "W/"
DIAGNOSTIC_LIMIT = 2000


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def if_match_value(etag: Optional[str]) -> Optional[str]:
    """The ETag to send as If-Match, or None when there is none or it is weak."""
    if not etag or etag.startswith(WEAK_ETAG_PREFIX):
        return None
    return etag


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def merge_feed_body(existing: str, delta: str) -> str:
    """
    Append a delta to an existing feed body.

    The result is the existing content, exactly one blank line, the delta,
    and exactly one trailing newline, whatever line endings or trailing
    newlines the inputs carried. An empty body yields a leading blank line.
    """
    existing = normalize_newlines(existing or "").rstrip("\n")
    delta = normalize_newlines(delta or "").rstrip("\n")

    merged = f"{existing}\n\n" if existing else "\n"
    if delta:
        merged += f"{delta}\n"
    return merged


def media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters such as charset from a Content-Type value."""
    if not content_type:
        return None
    value = content_type.split(";", 1)[0].strip()
    return value or None


def response_excerpt(response) -> str:
    """Best-effort text of a response body for diagnostics."""
    try:
        text = response.text or ""
    except (AttributeError, UnicodeDecodeError):
        return ""
    text = text.strip()
    if len(text) > DIAGNOSTIC_LIMIT:
        text = text[:DIAGNOSTIC_LIMIT] + "..."
    return text


class FeedMergeEngine:
    """
    Appends delta documents to a feed resource with optimistic concurrency.

    Usage:
      engine = FeedMergeEngine(bearer_token=token, timeouts=HttpTimeouts(20, 120))
      engine.merge_into_feed("https://example.org/feed", delta_text)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        bearer_token: Optional[str] = None,
        timeouts: Optional[HttpTimeouts] = None,
    ):
        self.session = session if session is not None else requests.Session()
        self.bearer_token = bearer_token if bearer_token and bearer_token.strip() else None
        self.timeouts = timeouts or HttpTimeouts()

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        if extra:
            headers.update(extra)
        return headers

    # ----------------------------
    # FETCH
    # ----------------------------
    def fetch(self, feed_url: str) -> FeedSnapshot:
        """
        Read the current feed body and its concurrency validator.

        Raises:
            FetchError: If the GET fails, times out or returns a non-2xx status
        """
        try:
            response = self.session.get(
                feed_url,
                headers=self._headers(),
                timeout=self.timeouts.as_requests(),
            )
        except requests.RequestException as e:
            logger.error(f"GET {feed_url} failed: {e}")
            raise FetchError(feed_url, None, f"GET {feed_url} failed: {e}") from e

        logger.info(f"GET {feed_url} -> HTTP {response.status_code}")
        if not is_success(response.status_code):
            excerpt = response_excerpt(response)
            if excerpt:
                logger.error(excerpt)
            raise FetchError(feed_url, response.status_code, f"GET failed: HTTP {response.status_code}")

        etag = first_header(response.headers, "ETag")
        etag = etag.strip() if etag and etag.strip() else None

        return FeedSnapshot(
            body=response.content or b"",
            etag=etag,
            content_type=media_type(first_header(response.headers, "Content-Type")),
            status_code=response.status_code,
        )

    # ----------------------------
    # COMMIT
    # ----------------------------
    def commit(self, feed_url: str, merged_body: str, snapshot: FeedSnapshot) -> requests.Response:
        """
        Write the merged body back, guarded by the snapshot's ETag.

        Raises:
            ConflictError: If the server reports the precondition failed (HTTP 412)
            CommitError: If the PUT fails, times out or returns any other non-2xx status
        """
        extra = {"Content-Type": snapshot.content_type or DEFAULT_CONTENT_TYPE}
        if_match = if_match_value(snapshot.etag)
        if if_match:
            extra["If-Match"] = if_match
        elif snapshot.etag:
            logger.warning(f"Feed returned weak ETag {snapshot.etag}; writing without If-Match")

        try:
            response = self.session.put(
                feed_url,
                data=merged_body.encode("utf-8"),
                headers=self._headers(extra),
                timeout=self.timeouts.as_requests(),
            )
        except requests.RequestException as e:
            logger.error(f"PUT {feed_url} failed: {e}")
            raise CommitError(feed_url, None, f"PUT {feed_url} failed: {e}") from e

        logger.info(f"PUT {feed_url} -> HTTP {response.status_code}")
        excerpt = response_excerpt(response)

        if response.status_code == PRECONDITION_FAILED:
            if excerpt:
                logger.error(excerpt)
            raise ConflictError(
                feed_url,
                response.status_code,
                f"PUT rejected: feed changed since it was read (If-Match {snapshot.etag})",
            )
        if not is_success(response.status_code):
            if excerpt:
                logger.error(excerpt)
            raise CommitError(feed_url, response.status_code, f"PUT failed: HTTP {response.status_code}")

        if excerpt:
            logger.debug(excerpt)
        return response

    def merge_into_feed(self, feed_url: str, delta_text: str) -> FeedUpdateResult:
        """
        Run one FETCH -> APPEND -> COMMIT cycle against the feed.

        Args:
            feed_url: URL of the feed resource
            delta_text: Delta document to append

        Returns:
            FeedUpdateResult with the status codes of both requests
        """
        snapshot = self.fetch(feed_url)

        merged = merge_feed_body(snapshot.text(), delta_text)
        logger.debug(f"Merged feed body:\n{merged}")

        response = self.commit(feed_url, merged, snapshot)
        return FeedUpdateResult(
            fetch_status=snapshot.status_code,
            commit_status=response.status_code,
            etag_used=if_match_value(snapshot.etag),
            bytes_written=len(merged.encode("utf-8")),
        )

    def close(self) -> None:
        self.session.close()
