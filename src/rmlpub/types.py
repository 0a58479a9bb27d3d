"""
Type definitions for the publish and feed-update pipeline.

This module provides the immutable value objects passed between pipeline
stages and the exception hierarchy raised by them.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class HttpTimeouts:
    """Independent connect and per-request budgets (seconds) for every HTTP call."""
    connect: float = 20.0
    request: float = 120.0

    def as_requests(self) -> tuple[float, float]:
        """Return the (connect, read) tuple accepted by requests."""
        return (self.connect, self.request)


@dataclass(frozen=True)
class FeedSnapshot:
    """State of the feed resource as returned by a single GET.

    Consumed immediately by the merge step and discarded after the PUT.
    """
    body: bytes
    etag: Optional[str] = None
    content_type: Optional[str] = None
    status_code: int = 200

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FeedUpdateResult:
    """Outcome of one FETCH -> APPEND -> COMMIT cycle."""
    fetch_status: int
    commit_status: int
    etag_used: Optional[str] = None
    bytes_written: int = 0


# Pipeline exception hierarchy
class PublishError(Exception):
    """Base exception for publish operations."""
    pass


class InvalidInputError(PublishError, ValueError):
    """Malformed or missing required publication fields."""
    pass


class ConversionError(PublishError):
    """External conversion failed or produced no output."""
    pass


class HttpStepError(PublishError):
    """A network step finished outside the 2xx range or did not finish at all."""
    def __init__(self, url: str, status_code: Optional[int], message: str):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class StoreError(HttpStepError):
    """Dataset upload to the storage endpoint failed."""
    pass


class FeedUpdateError(HttpStepError):
    """Base class for feed read/write failures."""
    pass


class FetchError(FeedUpdateError):
    """Feed GET did not succeed."""
    pass


class CommitError(FeedUpdateError):
    """Feed PUT did not succeed."""
    pass


class ConflictError(CommitError):
    """Feed PUT rejected because the resource changed since it was read."""
    pass
