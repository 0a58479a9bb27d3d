"""
Publish orchestrator: store -> resolve location -> build delta -> merge into feed.

Feed registration is best-effort: when the storage endpoint does not return
a Location header the run completes successfully without touching the feed.
Every other failure propagates as a typed PublishError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

from ..domain.models import DatasetMetadata, PublicationRequest, PublishOutcome
from .delta import DEFAULT_URN_NAMESPACE, DeltaBuilder
from .feed import FeedMergeEngine
from .location import resolve_location
from .store import DatasetStore

logger = logging.getLogger(__name__)

NO_LOCATION = "No Location header returned"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedPublisher:
    """
    Sequences the publish steps for one dataset.

    The three network calls run strictly one after another; each step's
    input is the previous step's output.
    """

    def __init__(
        self,
        store: DatasetStore,
        feed_engine: FeedMergeEngine,
        namespace: str = DEFAULT_URN_NAMESPACE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.feed_engine = feed_engine
        self.builder = DeltaBuilder(namespace)
        self.clock = clock or utc_now

    def publish(
        self,
        data: bytes,
        serialization: str,
        post_url: str,
        feed_url: str,
        metadata: DatasetMetadata,
    ) -> PublishOutcome:
        """
        Store a dataset and register it in the feed.

        Args:
            data: Serialized dataset bytes
            serialization: Serialization name, selects the upload content type
            post_url: Storage endpoint URL
            feed_url: Feed resource URL
            metadata: Dataset metadata for the delta document

        Returns:
            PublishOutcome describing what was done

        Raises:
            StoreError, InvalidInputError, FetchError, CommitError, ConflictError
        """
        response = self.store.upload(post_url, data, serialization)

        location = resolve_location(response, post_url)
        if location is None:
            logger.info(f"{NO_LOCATION}; skipping feed update")
            return PublishOutcome(
                store_status=response.status_code,
                skipped_reason=NO_LOCATION,
            )

        logger.info(f"Location: {location}")
        request = PublicationRequest.for_location(metadata, location)
        delta = self.builder.build(request, self.clock()).render()

        result = self.feed_engine.merge_into_feed(feed_url, delta)
        logger.info(f"Registered {location} in feed {feed_url}")

        return PublishOutcome(
            store_status=response.status_code,
            location=location,
            feed_updated=True,
            feed_status=result.commit_status,
        )
