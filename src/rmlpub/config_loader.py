"""
Publication configuration loading for the rmlpub CLI.

Publication metadata can come from a YAML file, from CLI options, or both;
CLI values win. Example file:

    title: Road network
    description: Roads mapped from the municipal register
    keywords: [roads, mobility]
    ontologies:
      - https://example.org/ontology/roads.ttl
    shapes:
      - https://example.org/shapes/roads.ttl
    feed_url: https://example.org/feed
    post_url: https://example.org/datasets
    serialization: turtle
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .domain.models import DatasetMetadata
from .types import InvalidInputError
from .utils import load_yaml_file, split_multi

PUBLICATION_KEYS = {
    "input_url", "title", "description", "keywords", "ontologies", "shapes",
    "feed_url", "feed_id", "post_url", "serialization",
}


def load_publication_config(config_path: Optional[str]) -> dict[str, Any]:
    """
    Load publication defaults from a YAML file.

    Args:
        config_path: Path to the YAML file, or None for no defaults

    Returns:
        Dictionary restricted to known publication keys

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid YAML or contains unknown keys
    """
    if not config_path:
        return {}

    content = load_yaml_file(Path(config_path))
    unknown = sorted(set(content) - PUBLICATION_KEYS)
    if unknown:
        raise ValueError(f"Unknown keys in {config_path}: {', '.join(unknown)}")
    return content


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def pick(cli_value: Any, defaults: dict[str, Any], key: str) -> Any:
    """CLI value when given (non-empty), otherwise the file default."""
    if cli_value not in (None, "", [], ()):
        return cli_value
    return defaults.get(key)


def pick_multi(cli_values: Optional[list[str]], defaults: dict[str, Any], key: str) -> list[str]:
    values = split_multi(cli_values)
    if values:
        return values
    return split_multi(_as_list(defaults.get(key)))


def build_metadata(
    defaults: dict[str, Any],
    input_url: Optional[str] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    keywords: Optional[list[str]] = None,
    ontologies: Optional[list[str]] = None,
    shapes: Optional[list[str]] = None,
    feed_id: Optional[str] = None,
    feed_url: Optional[str] = None,
) -> DatasetMetadata:
    """
    Merge CLI values over file defaults into DatasetMetadata.

    The feed id falls back to the feed URL.

    Raises:
        InvalidInputError: If required fields are missing or invalid
    """
    dataset_url = pick(input_url, defaults, "input_url")
    resolved_feed_id = pick(feed_id, defaults, "feed_id") or pick(feed_url, defaults, "feed_url")
    resolved_keywords = pick_multi(keywords, defaults, "keywords")

    missing = []
    if not dataset_url:
        missing.append("input_url")
    if not resolved_feed_id:
        missing.append("feed_id/feed_url")
    if not resolved_keywords:
        missing.append("keywords")
    if missing:
        raise InvalidInputError(f"Missing required publication fields: {', '.join(missing)}")

    try:
        return DatasetMetadata(
            dataset_url=dataset_url,
            title=pick(title, defaults, "title") or "",
            description=pick(description, defaults, "description") or "",
            keywords=tuple(resolved_keywords),
            ontology_urls=tuple(pick_multi(ontologies, defaults, "ontologies")),
            validation_urls=tuple(pick_multi(shapes, defaults, "shapes")),
            feed_id=resolved_feed_id,
        )
    except ValidationError as e:
        raise InvalidInputError(f"Invalid publication metadata: {e}") from e
