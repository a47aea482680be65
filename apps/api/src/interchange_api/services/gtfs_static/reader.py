"""Static GTFS reader for a ZIP archive or an unpacked directory."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import IO, Union

from interchange_api.logging import get_logger

logger = get_logger(__name__)

# The snapshot engine only needs stop hierarchy and platform codes
REQUIRED_FILES = {"stops.txt"}


class MissingRequiredFileError(Exception):
    """Raised when a required GTFS file is missing from the archive or directory."""


class GtfsReader:
    """Opens a static GTFS dataset from ZIP bytes, a ZIP path or a directory."""

    def __init__(self, source: Union[bytes, str, Path]) -> None:
        """
        Raises:
            zipfile.BadZipFile: If a ZIP source is not a valid archive.
            MissingRequiredFileError: If required files are missing.
        """
        self._zip: zipfile.ZipFile | None = None
        self._dir: Path | None = None

        if isinstance(source, bytes):
            self._zip = zipfile.ZipFile(io.BytesIO(source))
        else:
            path = Path(source)
            if path.is_dir():
                self._dir = path
            else:
                self._zip = zipfile.ZipFile(path)

        self._validate_required_files()

    def _validate_required_files(self) -> None:
        names = set(self.list_files())
        missing = REQUIRED_FILES - names
        if missing:
            msg = f"Missing required GTFS files: {sorted(missing)}"
            raise MissingRequiredFileError(msg)

        logger.info(
            "Static GTFS source opened",
            source="zip" if self._zip is not None else str(self._dir),
            total_files=len(names),
        )

    def open_file(self, filename: str) -> IO[str]:
        """Open a GTFS file for text reading (BOM-tolerant)."""
        if self._zip is not None:
            return io.TextIOWrapper(self._zip.open(filename), encoding="utf-8-sig")
        assert self._dir is not None
        return (self._dir / filename).open(encoding="utf-8-sig", newline="")

    def list_files(self) -> list[str]:
        if self._zip is not None:
            return self._zip.namelist()
        assert self._dir is not None
        return sorted(p.name for p in self._dir.iterdir() if p.is_file())

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()

    def __enter__(self) -> GtfsReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
