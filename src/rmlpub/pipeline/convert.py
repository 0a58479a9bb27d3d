"""
Out-of-process conversion engine invocation.

The mapping is handed to the engine through a temp file in the per-process
temp directory and the serialized dataset is read from the child's stdout.
No process-wide streams are redirected; the temp file is removed whether
or not the conversion succeeds.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Optional, Union

from ..cleanup import get_pid_temp_dir
from ..types import ConversionError
from ..utils import timer

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("java", "-jar", "rmlmapper.jar")
STDERR_TAIL = 2000


class RmlMapperConverter:
    """Runs an RML mapper command line and returns the produced bytes."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        timeout_s: int = 600,
        temp_root: Optional[Union[str, Path]] = None,
    ):
        self.command = list(command) if command else list(DEFAULT_COMMAND)
        self.timeout_s = timeout_s
        self.temp_root = temp_root

    def build_argv(self, mapping_path: str, serialization: str) -> list[str]:
        return [*self.command, "-m", mapping_path, "-s", serialization]

    @timer
    def convert(self, mapping_text: str, serialization: str) -> bytes:
        """
        Convert input data described by a mapping into serialized RDF.

        Args:
            mapping_text: Mapping document content
            serialization: Output serialization name passed to the engine

        Returns:
            Serialized dataset bytes

        Raises:
            ConversionError: If the engine is missing, fails, times out or writes nothing
        """
        if not mapping_text or not mapping_text.strip():
            raise ConversionError("Mapping is empty")

        try:
            handle = tempfile.NamedTemporaryFile(
                mode="w", encoding="utf-8", prefix="mapping-", suffix=".ttl",
                dir=get_pid_temp_dir(self.temp_root), delete=False
            )
        except OSError as e:
            raise ConversionError(f"Could not create mapping temp file: {e}") from e
        try:
            with handle:
                handle.write(mapping_text)

            argv = self.build_argv(handle.name, serialization)
            logger.info(f"Running conversion: {' '.join(argv)}")
            try:
                result = subprocess.run(argv, capture_output=True, timeout=self.timeout_s, check=False)
            except FileNotFoundError as e:
                raise ConversionError(f"Conversion engine not found: {self.command[0]}") from e
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"Conversion timed out after {self.timeout_s}s") from e
            except OSError as e:
                raise ConversionError(f"Could not start conversion engine {self.command[0]}: {e}") from e
        finally:
            try:
                os.unlink(handle.name)
            except FileNotFoundError:
                pass

        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        if result.returncode != 0:
            raise ConversionError(
                f"Conversion failed with exit code {result.returncode}: {stderr[-STDERR_TAIL:]}"
            )
        if not result.stdout:
            raise ConversionError(f"Conversion produced no output: {stderr[-STDERR_TAIL:]}")

        if stderr:
            logger.debug(stderr[-STDERR_TAIL:])
        logger.info(f"Conversion produced {len(result.stdout):,} bytes")
        return result.stdout
