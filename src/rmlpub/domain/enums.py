"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
"""

from enum import Enum


DEFAULT_CONTENT_TYPE = "application/octet-stream"


class Serialization(str, Enum):
    """RDF serializations the conversion engine can emit."""
    TURTLE = "turtle"       # Terse RDF Triple Language
    NQUADS = "nquads"       # Line-based quads
    TRIG = "trig"           # Turtle with named graphs
    TRIX = "trix"           # XML triples
    JSONLD = "jsonld"       # JSON for Linked Data

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @classmethod
    def from_name(cls, name: str) -> "Serialization | None":
        """Resolve a user-supplied name or alias; None when unknown."""
        return _ALIASES.get((name or "").strip().lower())


_CONTENT_TYPES = {
    Serialization.TURTLE: "text/turtle",
    Serialization.NQUADS: "application/n-quads",
    Serialization.TRIG: "application/trig",
    Serialization.TRIX: "application/trix+xml",
    Serialization.JSONLD: "application/ld+json",
}

_ALIASES = {
    "turtle": Serialization.TURTLE,
    "ttl": Serialization.TURTLE,
    "nquads": Serialization.NQUADS,
    "n-quads": Serialization.NQUADS,
    "nq": Serialization.NQUADS,
    "trig": Serialization.TRIG,
    "trix": Serialization.TRIX,
    "jsonld": Serialization.JSONLD,
    "json-ld": Serialization.JSONLD,
}


def content_type_for(serialization: str) -> str:
    """Map a serialization name to the Content-Type used for upload."""
    resolved = Serialization.from_name(serialization)
    return resolved.content_type if resolved else DEFAULT_CONTENT_TYPE
