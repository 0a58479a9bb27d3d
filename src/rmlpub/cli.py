import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load environment variables BEFORE importing local modules that use them
load_dotenv()

from .cleanup import cleanup_current_pid, cleanup_stale_files, register_cleanup_handlers
from .config.settings import Config, ConfigurationError
from .config_loader import build_metadata, load_publication_config, pick
from .domain.enums import Serialization
from .domain.models import PublicationRequest
from .pipeline.convert import RmlMapperConverter
from .pipeline.delta import DeltaBuilder
from .pipeline.feed import FeedMergeEngine
from .pipeline.publish import FeedPublisher
from .pipeline.store import DatasetStore, create_session
from .types import ConflictError, InvalidInputError, PublishError
from .utils import setup_logging

app = typer.Typer(help="rmlpub: Convert -> Store -> Register in feed")

EXIT_FAILURE = 1
EXIT_CONFLICT = 2

ConfigOption = Annotated[Optional[str], typer.Option("--config", "-c", help="YAML file with publication defaults")]
InputUrlOption = Annotated[Optional[str], typer.Option("--input-url", help="Source dataset URL (dataset identifier in the feed)")]
TitleOption = Annotated[Optional[str], typer.Option("--title", help="Dataset title")]
DescriptionOption = Annotated[Optional[str], typer.Option("--description", help="Dataset description")]
KeywordsOption = Annotated[Optional[list[str]], typer.Option("--keywords", help="Keywords; repeat the flag or separate with commas")]
OntologiesOption = Annotated[Optional[list[str]], typer.Option("--ontologies", help="Ontology URLs; repeat the flag or separate with commas")]
ShapesOption = Annotated[Optional[list[str]], typer.Option("--shapes", help="Validation shape URLs; repeat the flag or separate with commas")]
FeedUrlOption = Annotated[Optional[str], typer.Option("--feed-url", help="Feed resource URL")]
FeedIdOption = Annotated[Optional[str], typer.Option("--feed-id", help="Feed identifier used in tree:member (defaults to --feed-url)")]
MappingOption = Annotated[Optional[str], typer.Option("--mapping", help="Mapping document content")]
MappingFileOption = Annotated[Optional[Path], typer.Option("--mapping-file", help="Path to the mapping document")]
SerializationOption = Annotated[Optional[str], typer.Option("--serialization", "-s", help="Output serialization: turtle, nquads, trig, trix, jsonld")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")]


def read_mapping(mapping: Optional[str], mapping_file: Optional[Path]) -> str:
    """Return the mapping document from exactly one of --mapping / --mapping-file."""
    if mapping and mapping_file:
        raise InvalidInputError("Use either --mapping or --mapping-file, not both")
    if mapping_file:
        if not mapping_file.exists():
            raise InvalidInputError(f"Mapping file not found: {mapping_file}")
        return mapping_file.read_text(encoding="utf-8")
    if mapping:
        return mapping
    raise InvalidInputError("A mapping is required (--mapping or --mapping-file)")


def resolve_serialization(cli_value: Optional[str], defaults: dict) -> str:
    serialization = pick(cli_value, defaults, "serialization") or Serialization.TURTLE.value
    if Serialization.from_name(serialization) is None:
        logging.warning(f"Unknown serialization '{serialization}'; uploading as application/octet-stream")
    return serialization


@app.command("publish")
def publish(
    input_url: InputUrlOption = None,
    post_url: Annotated[Optional[str], typer.Option("--post-url", help="Storage endpoint URL")] = None,
    feed_url: FeedUrlOption = None,
    feed_id: FeedIdOption = None,
    mapping: MappingOption = None,
    mapping_file: MappingFileOption = None,
    data_file: Annotated[Optional[Path], typer.Option("--data-file", help="Upload an already serialized dataset instead of converting")] = None,
    serialization: SerializationOption = None,
    bearer: Annotated[Optional[str], typer.Option("--bearer", help="Bearer token (defaults to RMLPUB_BEARER_TOKEN)")] = None,
    title: TitleOption = None,
    description: DescriptionOption = None,
    keywords: KeywordsOption = None,
    ontologies: OntologiesOption = None,
    shapes: ShapesOption = None,
    config: ConfigOption = None,
    connect_timeout: Annotated[Optional[float], typer.Option("--connect-timeout", help="Connect timeout in seconds")] = None,
    request_timeout: Annotated[Optional[float], typer.Option("--request-timeout", help="Per-request timeout in seconds")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Validate inputs without converting or publishing")] = False,
    verbose: VerboseOption = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
    skip_cleanup: Annotated[bool, typer.Option("--skip-cleanup", help="Skip stale temp file cleanup")] = False,
):
    """
    Convert a dataset, upload it, and register it in the activity feed.

    The feed is only updated when the storage endpoint answers with a
    Location header; otherwise the run ends after the upload.

    Examples:
        rmlpub publish --input-url https://data.example.org/roads.csv \\
            --mapping-file roads.rml.ttl --post-url https://store.example.org/datasets \\
            --feed-url https://store.example.org/feed --title "Roads" --keywords roads,mobility
        rmlpub publish -c roads.yml --data-file roads.ttl --dry-run
    """
    setup_logging(verbose, "publish", log_to_file)

    session = None
    temp_root = None
    try:
        settings = Config()
        temp_root = settings.temp.temp_root
        register_cleanup_handlers(temp_root)
        defaults = load_publication_config(config)

        metadata = build_metadata(
            defaults,
            input_url=input_url,
            title=title,
            description=description,
            keywords=keywords,
            ontologies=ontologies,
            shapes=shapes,
            feed_id=feed_id,
            feed_url=feed_url,
        )
        target_post_url = pick(post_url, defaults, "post_url")
        target_feed_url = pick(feed_url, defaults, "feed_url")
        if not target_post_url or not target_feed_url:
            raise InvalidInputError("Both --post-url and --feed-url are required")

        chosen_serialization = resolve_serialization(serialization, defaults)
        mapping_text = None
        if data_file is None:
            mapping_text = read_mapping(mapping, mapping_file)
        elif not data_file.exists():
            raise InvalidInputError(f"Data file not found: {data_file}")

        logging.info(f"Dataset: {metadata.dataset_url}")
        logging.info(f"Keywords: {list(metadata.keywords)}")
        logging.info(f"Ontologies: {list(metadata.ontology_urls)}")
        logging.info(f"Shapes: {list(metadata.validation_urls)}")

        if dry_run:
            logging.info(f"DRY RUN: Would upload {chosen_serialization} data to {target_post_url}")
            logging.info(f"DRY RUN: Would register the stored dataset in {target_feed_url}")
            return

        if not skip_cleanup:
            cleanup_stale_files(settings.temp.retention_hours, temp_root)

        if data_file is not None:
            data = data_file.read_bytes()
        else:
            converter = RmlMapperConverter(settings.mapper.argv(), settings.mapper.timeout_s, temp_root)
            data = converter.convert(mapping_text, chosen_serialization)

        token = bearer or settings.http.bearer_token
        timeouts = settings.http.timeouts(connect_timeout, request_timeout)
        session = create_session()
        publisher = FeedPublisher(
            store=DatasetStore(session, token, timeouts),
            feed_engine=FeedMergeEngine(session, token, timeouts),
            namespace=settings.feed.urn_namespace,
        )

        outcome = publisher.publish(
            data=data,
            serialization=chosen_serialization,
            post_url=target_post_url,
            feed_url=target_feed_url,
            metadata=metadata,
        )
        if outcome.feed_updated:
            typer.echo(f"Published: {outcome.location}")
        else:
            typer.echo(f"Uploaded (HTTP {outcome.store_status}); feed not updated: {outcome.skipped_reason}")

    except ConflictError as e:
        logging.error(f"Feed update conflict: {e}")
        logging.error("The feed changed while it was being updated; re-run to retry against the new state")
        raise typer.Exit(EXIT_CONFLICT)
    except (PublishError, ConfigurationError, OSError, ValueError) as e:
        logging.error(f"Publish failed: {e}")
        raise typer.Exit(EXIT_FAILURE)
    finally:
        if session is not None:
            session.close()
        cleanup_current_pid(temp_root)


@app.command("convert")
def convert(
    mapping: MappingOption = None,
    mapping_file: MappingFileOption = None,
    serialization: SerializationOption = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write output here instead of stdout")] = None,
    verbose: VerboseOption = False,
):
    """Run the conversion engine only and emit the serialized dataset."""
    setup_logging(verbose, "convert")
    temp_root = None
    try:
        settings = Config()
        temp_root = settings.temp.temp_root
        register_cleanup_handlers(temp_root)
        mapping_text = read_mapping(mapping, mapping_file)
        chosen_serialization = resolve_serialization(serialization, {})

        converter = RmlMapperConverter(settings.mapper.argv(), settings.mapper.timeout_s, temp_root)
        data = converter.convert(mapping_text, chosen_serialization)

        if output:
            output.write_bytes(data)
            logging.info(f"Wrote {len(data):,} bytes to {output}")
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.flush()
    except (PublishError, ConfigurationError, OSError) as e:
        logging.error(f"Conversion failed: {e}")
        raise typer.Exit(EXIT_FAILURE)
    finally:
        cleanup_current_pid(temp_root)


@app.command("delta")
def delta(
    location: Annotated[str, typer.Option("--location", help="Stored address of the dataset")],
    input_url: InputUrlOption = None,
    feed_url: FeedUrlOption = None,
    feed_id: FeedIdOption = None,
    title: TitleOption = None,
    description: DescriptionOption = None,
    keywords: KeywordsOption = None,
    ontologies: OntologiesOption = None,
    shapes: ShapesOption = None,
    config: ConfigOption = None,
    timestamp: Annotated[Optional[str], typer.Option("--timestamp", help="Publish time (ISO 8601, UTC if no offset); defaults to now")] = None,
    namespace: Annotated[Optional[str], typer.Option("--namespace", help="URN namespace (defaults to RMLPUB_URN_NAMESPACE)")] = None,
    verbose: VerboseOption = False,
):
    """Print the delta document that publishing would append to the feed."""
    setup_logging(verbose, "delta")
    try:
        defaults = load_publication_config(config)
        metadata = build_metadata(
            defaults,
            input_url=input_url,
            title=title,
            description=description,
            keywords=keywords,
            ontologies=ontologies,
            shapes=shapes,
            feed_id=feed_id,
            feed_url=feed_url,
        )
        published = datetime.fromisoformat(timestamp) if timestamp else None
        urn_namespace = namespace or Config().feed.urn_namespace

        request = PublicationRequest.for_location(metadata, location)
        typer.echo(DeltaBuilder(urn_namespace).build(request, published).render(), nl=False)
    except (PublishError, ConfigurationError, FileNotFoundError, ValueError) as e:
        logging.error(f"Could not build delta: {e}")
        raise typer.Exit(EXIT_FAILURE)


@app.command("version")
def version():
    """Display version information."""
    from . import __version__
    typer.echo(f"rmlpub version: {__version__}")


if __name__ == "__main__":
    app()
