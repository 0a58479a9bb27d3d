"""
Pipeline Domain Models

Pydantic models for type safety and validation across the pipeline.
These models ensure data integrity and provide clear interfaces.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DatasetMetadata(BaseModel):
    """Descriptive metadata for a dataset, known before it is stored."""
    dataset_url: str = Field(..., description="Source identifier of the dataset")
    title: str = Field(..., description="Dataset title")
    description: str = Field(default="", description="Dataset description")
    keywords: tuple[str, ...] = Field(default=(), description="Ordered keywords")
    ontology_urls: tuple[str, ...] = Field(default=(), description="Ontologies used by the dataset")
    validation_urls: tuple[str, ...] = Field(default=(), description="Validation shapes for the dataset")
    feed_id: str = Field(..., description="Identifier of the feed the dataset joins")

    class Config:
        """Pydantic configuration."""
        frozen = True


class PublicationRequest(DatasetMetadata):
    """Dataset metadata bound to the address the storage endpoint assigned."""
    resource_location: str = Field(..., description="Final stored address of the dataset")

    @classmethod
    def for_location(cls, metadata: DatasetMetadata, resource_location: str) -> "PublicationRequest":
        fields = metadata.model_dump()
        fields["resource_location"] = resource_location
        return cls(**fields)


class PublishOutcome(BaseModel):
    """Summary of one publish run."""
    store_status: int = Field(..., description="HTTP status of the dataset upload")
    location: Optional[str] = Field(None, description="Resolved location of the stored dataset")
    feed_updated: bool = Field(default=False, description="Whether the feed was written")
    feed_status: Optional[int] = Field(None, description="HTTP status of the feed PUT")
    skipped_reason: Optional[str] = Field(None, description="Why the feed update was skipped")
