"""
Consolidated Utilities

Sections:
- Logging and timing utilities
- Option parsing helpers
- Configuration helpers
"""

import functools
import logging
import sys
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

# =============================================================================
# Logging and Timing Utilities
# =============================================================================

def setup_logging(
    verbose: bool,
    command_name: Optional[str] = None,
    enable_file_logging: bool = False
) -> None:
    """
    Configure logging with optional timestamped file output.

    Args:
        verbose: Enable debug-level logging if True
        command_name: CLI command used for log file naming
        enable_file_logging: Create timestamped log files when True
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if enable_file_logging and command_name:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"{command_name}_{timestamp}.log"

        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        print(f"Logging to: {log_file}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True
    )


def timer(func: Callable) -> Callable:
    """Decorator to time function execution."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        end_time = time.time()
        logging.info(f"{func.__name__} completed in {end_time - start_time:.2f} seconds")
        return result
    return wrapper


# =============================================================================
# Option Parsing Helpers
# =============================================================================

def split_multi(values: Optional[Iterable[str]]) -> list[str]:
    """
    Flatten repeated and comma-separated option values.

    ``["a, b", "c", " "]`` becomes ``["a", "b", "c"]``; order is kept.
    """
    if not values:
        return []
    out = []
    for value in values:
        if value is None:
            continue
        for part in value.split(","):
            part = part.strip()
            if part:
                out.append(part)
    return out


# =============================================================================
# Configuration Helpers
# =============================================================================

def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """
    Load YAML file with error handling.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed YAML content (empty dict for an empty file)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid YAML or not a mapping
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, encoding='utf-8') as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {file_path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Expected a mapping at the top of {file_path}")
    return content
