"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.

Models:
- DatasetMetadata: Descriptive metadata supplied by the caller
- PublicationRequest: Metadata bound to the stored resource location
- PublishOutcome: Result summary of a publish run

Enums:
- Serialization: RDF serializations and their upload content types
"""

from .enums import DEFAULT_CONTENT_TYPE, Serialization, content_type_for
from .models import DatasetMetadata, PublicationRequest, PublishOutcome

__all__ = [
    "DatasetMetadata", "PublicationRequest", "PublishOutcome",
    "Serialization", "content_type_for", "DEFAULT_CONTENT_TYPE"
]
