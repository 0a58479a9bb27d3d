"""
Delta document builder for feed registration.

A delta document is the block of TriG text appended to the activity feed
when a dataset is published. It is assembled from typed sections in a fixed
order; the order is checked whenever a DeltaDocument is constructed, so a
missing or misplaced section fails at build time rather than in a diff.

Rendered section order:
  header comment, creation event, named-graph open, dataset (with its
  distribution), media type, profile, ontology descriptors (0..n),
  validation descriptors (0..n), conformance and membership links,
  named-graph close.

Title and description are inserted verbatim; callers must pre-sanitize
values containing quotes or other TriG delimiters.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..domain.models import PublicationRequest
from ..types import InvalidInputError

DEFAULT_URN_NAMESPACE = "deployEMDS"
PUBLISHED_FORMAT = "%Y-%m-%dT%H:%MZ"

VOCABULARY_ROLE = "http://www.w3.org/ns/dx/prof/role/vocabulary"
VALIDATION_ROLE = "http://www.w3.org/ns/dx/prof/role/validation"


class SectionKind(str, Enum):
    """Section types in rendering order."""
    HEADER = "header"
    CREATION = "creation"
    GRAPH_OPEN = "graph_open"
    DATASET = "dataset"
    MEDIA_TYPE = "media_type"
    PROFILE = "profile"
    ONTOLOGY = "ontology"
    VALIDATION = "validation"
    LINKS = "links"
    GRAPH_CLOSE = "graph_close"


SECTION_ORDER: tuple[SectionKind, ...] = tuple(SectionKind)
REPEATABLE_SECTIONS = frozenset({SectionKind.ONTOLOGY, SectionKind.VALIDATION})


@dataclass(frozen=True)
class DeltaSection:
    kind: SectionKind
    lines: tuple[str, ...]

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


@dataclass(frozen=True)
class DeltaDocument:
    """Ordered, validated sequence of delta sections."""
    sections: tuple[DeltaSection, ...]

    def __post_init__(self):
        check_section_order([section.kind for section in self.sections])

    def kinds(self) -> list[SectionKind]:
        return [section.kind for section in self.sections]

    def render(self) -> str:
        return "".join(section.render() for section in self.sections)

    def __str__(self) -> str:
        return self.render()


def check_section_order(kinds: Sequence[SectionKind]) -> None:
    """
    Verify that section kinds follow SECTION_ORDER.

    Raises:
        ValueError: If a section is out of order, duplicated or missing
    """
    position = -1
    seen: set[SectionKind] = set()
    for kind in kinds:
        index = SECTION_ORDER.index(kind)
        if index < position:
            raise ValueError(f"Section '{kind.value}' appears after '{SECTION_ORDER[position].value}'")
        if kind in seen and kind not in REPEATABLE_SECTIONS:
            raise ValueError(f"Section '{kind.value}' appears more than once")
        seen.add(kind)
        position = index

    missing = [kind.value for kind in SECTION_ORDER if kind not in REPEATABLE_SECTIONS and kind not in seen]
    if missing:
        raise ValueError(f"Delta document is missing sections: {', '.join(missing)}")


def format_published(timestamp: Optional[datetime] = None) -> str:
    """
    Format a publish time as UTC with minute precision and a literal 'Z'.

    Naive datetimes are taken as UTC; None means now. Seconds are dropped.
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime(PUBLISHED_FORMAT)


def format_keywords(keywords: Iterable[str]) -> str:
    """Render keywords as a quoted, comma-separated enumeration in input order."""
    keywords = list(keywords)
    if not keywords:
        raise InvalidInputError("At least one keyword is required to build a delta document")
    return ", ".join(f'"{keyword}"' for keyword in keywords)


class DeltaBuilder:
    """
    Builds the delta document for one publication.

    Identifiers are derived from inputs only, so the same resource location
    always yields the same creation event id.
    """

    def __init__(self, namespace: str = DEFAULT_URN_NAMESPACE):
        self.namespace = namespace

    def creation_id(self, resource_location: str) -> str:
        return f"urn:{self.namespace}:events:create:mapped_{resource_location}"

    def profile_id(self, dataset_url: str) -> str:
        return f"urn:{self.namespace}:profiles:{dataset_url}"

    def build(self, request: PublicationRequest, timestamp: Optional[datetime] = None) -> DeltaDocument:
        """
        Assemble the delta document for a publication.

        Args:
            request: Publication metadata bound to its stored location
            timestamp: Publish time (defaults to now)

        Returns:
            Validated DeltaDocument

        Raises:
            InvalidInputError: If the keyword list is empty
        """
        keywords = format_keywords(request.keywords)
        published = format_published(timestamp)

        dataset_url = request.dataset_url
        creation_id = self.creation_id(request.resource_location)
        profile_id = self.profile_id(dataset_url)

        sections = [
            self._header(dataset_url),
            self._creation(creation_id, dataset_url, published),
            self._graph_open(creation_id),
            self._dataset(request, keywords),
            self._media_type(),
            self._profile(dataset_url, profile_id),
        ]
        sections.extend(self._ontology(url) for url in request.ontology_urls)
        sections.extend(self._validation(url) for url in request.validation_urls)
        sections.append(self._links(dataset_url, profile_id, request.feed_id, creation_id))
        sections.append(DeltaSection(SectionKind.GRAPH_CLOSE, ("}",)))

        return DeltaDocument(tuple(sections))

    # ----------------------------
    # Sections
    # ----------------------------
    def _header(self, dataset_url: str) -> DeltaSection:
        rule = "#" * 37
        return DeltaSection(SectionKind.HEADER, (
            rule,
            f"# dataset entry for {dataset_url}",
            rule,
            "",
        ))

    def _creation(self, creation_id: str, dataset_url: str, published: str) -> DeltaSection:
        return DeltaSection(SectionKind.CREATION, (
            "# --- Creation entry ---",
            f"<{creation_id}>",
            "  a as:Create ;",
            f"  as:object <{dataset_url}> ;",
            f'  as:published "{published}"^^xsd:dateTime .',
            "",
        ))

    def _graph_open(self, creation_id: str) -> DeltaSection:
        return DeltaSection(SectionKind.GRAPH_OPEN, (
            "# --- Member graph ---",
            f"<{creation_id}> {{",
            "",
        ))

    def _dataset(self, request: PublicationRequest, keywords: str) -> DeltaSection:
        return DeltaSection(SectionKind.DATASET, (
            "  # --- Dataset definition ---",
            f"  <{request.dataset_url}> a dcat:Dataset ;",
            f'    dct:title "{request.title}"@en ;',
            f'    dct:description "{request.description}"@en ;',
            f"    dcat:keyword {keywords} ;",
            "",
            "    # --- Dataset distribution ---",
            "    dcat:distribution [",
            "      a dcat:Distribution ;",
            f"      dcat:accessURL <{request.resource_location}> ;",
            '      dcat:mediaType "text/turtle" ;',
            "      dct:format _:turtle_format ;",
            "    ] .",
            "",
        ))

    def _media_type(self) -> DeltaSection:
        return DeltaSection(SectionKind.MEDIA_TYPE, (
            "  _:turtle_format a dct:MediaTypeOrExtent ;",
            '    dct:identifier "text/turtle" ;',
            '    rdfs:label "RDF Turtle"@en .',
            "",
        ))

    def _profile(self, dataset_url: str, profile_id: str) -> DeltaSection:
        rule = "  " + "#" * 42
        return DeltaSection(SectionKind.PROFILE, (
            rule,
            f"  # Profile entry for <{dataset_url}>",
            rule,
            "",
            f"  <{profile_id}>",
            "    a prof:Profile ;",
            f'    dct:title "Content profile for {dataset_url}"@en ;',
        ))

    def _descriptor(self, kind: SectionKind, comment: str, role: str, artifact: str, terminator: str) -> DeltaSection:
        return DeltaSection(kind, (
            f"    # --- {comment} ---",
            "    prof:hasResource [",
            "      a prof:ResourceDescriptor ;",
            f"      prof:hasRole <{role}> ;",
            f"      prof:hasArtifact <{artifact}> ;",
            '      dct:format "text/turtle" ;',
            '      dcat:mediaType "text/turtle"',
            f"    ] {terminator}",
        ))

    def _ontology(self, url: str) -> DeltaSection:
        return self._descriptor(SectionKind.ONTOLOGY, "Used ontologies", VOCABULARY_ROLE, url, ";")

    def _validation(self, url: str) -> DeltaSection:
        return self._descriptor(SectionKind.VALIDATION, "Validation info", VALIDATION_ROLE, url, ".")

    def _links(self, dataset_url: str, profile_id: str, feed_id: str, creation_id: str) -> DeltaSection:
        return DeltaSection(SectionKind.LINKS, (
            "  # --- Profile link ---",
            f"  <{dataset_url}> dct:conformsTo <{profile_id}> .",
            f"  <{feed_id}> tree:member <{creation_id}> .",
        ))


def build_delta(
    request: PublicationRequest,
    timestamp: Optional[datetime] = None,
    namespace: str = DEFAULT_URN_NAMESPACE
) -> str:
    """Render the delta document text for a publication."""
    return DeltaBuilder(namespace).build(request, timestamp).render()
