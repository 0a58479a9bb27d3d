"""
rmlpub Pipeline Components

Convert -> Store -> Resolve location -> Build delta -> Merge into feed.

Components:
- convert: RmlMapperConverter runs the external conversion engine
- store: DatasetStore uploads serialized datasets
- location: resolve_location reads the created resource's address
- delta: DeltaBuilder renders the feed delta document
- feed: FeedMergeEngine appends deltas with optimistic concurrency
- publish: FeedPublisher sequences the steps
"""

from .convert import RmlMapperConverter
from .delta import DeltaBuilder, DeltaDocument, build_delta
from .feed import FeedMergeEngine, merge_feed_body
from .location import resolve_location
from .publish import FeedPublisher
from .store import DatasetStore, create_session

__all__ = [
    "RmlMapperConverter", "DatasetStore", "create_session", "resolve_location",
    "DeltaBuilder", "DeltaDocument", "build_delta",
    "FeedMergeEngine", "merge_feed_body", "FeedPublisher"
]
