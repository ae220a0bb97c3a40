"""
Output Store - One JSON file per (target chain, canonical address).

============================================================
LAYOUT
============================================================
<output-root>/<target-chain>/<canonical-address>.json

============================================================
GUARANTEES
============================================================
- Writes are atomic per file (temp file + os.replace)
- Same ResolvedToken always serializes to identical bytes
- exists() is advisory; the skip policy belongs to the caller
- Every location stays inside <output-root>/<chain>/

============================================================
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from token_exporter.exceptions import OutputWriteError
from token_exporter.models import CanonicalAddress, ResolvedToken


logger = logging.getLogger(__name__)


class OutputStore:
    """Flat-file store for resolved tokens."""

    FILE_SUFFIX = ".json"

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputWriteError(
                message=f"Cannot create output directory: {e}",
                path=str(self._root),
                original_error=e,
            ) from e

    def location_for(self, chain_id: str, address: CanonicalAddress) -> Path:
        """
        Path of the token file for chain_id.

        Raises:
            OutputWriteError: If chain_id would place the file outside
                <root>/<chain>/.
        """
        location = self._root / chain_id / f"{address.hex}{self.FILE_SUFFIX}"
        self._check_contained(location, chain=chain_id, address=address.hex)
        return location

    def _check_contained(
        self,
        location: Path,
        chain: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        # lexical check, so symlinked chain directories stay allowed
        normalized = Path(os.path.normpath(location))
        if normalized != location or normalized.parent.parent != self._root:
            raise OutputWriteError(
                message="Location escapes the output root",
                path=str(location),
                chain=chain,
                address=address,
            )

    def exists(self, location: Path) -> bool:
        return location.is_file()

    @staticmethod
    def serialize(token: ResolvedToken) -> bytes:
        text = json.dumps(token.to_dict(), indent=2, ensure_ascii=False)
        return (text + "\n").encode("utf-8")

    def write(self, location: Path, token: ResolvedToken) -> Path:
        """
        Atomically write token to location.

        Raises:
            OutputWriteError: On any filesystem error, or if location lies
                outside the output root. No partial file is left at location.
        """
        self._check_contained(location, address=token.address.hex)
        data = self.serialize(token)
        tmp_path = None
        try:
            location.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{location.stem}.",
                suffix=".tmp",
                dir=location.parent,
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            # mkstemp creates 0600 files
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, location)
            tmp_path = None
        except OSError as e:
            raise OutputWriteError(
                message=f"Write failed: {e}",
                path=str(location),
                chain=location.parent.name,
                address=token.address.hex,
                original_error=e,
            ) from e
        finally:
            if tmp_path is not None:
                self._discard(Path(tmp_path))

        logger.debug(f"Wrote {location}")
        return location

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {path}: {e}")
