import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from azurite.config import settings
from azurite.utils.text import sanitize_filename

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 65_536  # 64 KB


@dataclass(frozen=True)
class StoredBlob:
    path: Path
    size: int
    sha256: str


class BlobStore:
    """Filesystem content store laid out as ``<root>/<mod_id>/<sanitized-filename>``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, mod_id: int, filename: str) -> Path:
        return self.root / str(mod_id) / sanitize_filename(filename)

    def put(self, mod_id: int, filename: str, stream: BinaryIO) -> StoredBlob:
        """Hash the stream, rewind it, then write it under the mod's directory.

        The bytes land in a temporary sibling first and are renamed into place,
        so a failed read never leaves a truncated blob at the final path.
        """
        digest = hashlib.sha256()
        while chunk := stream.read(_CHUNK_SIZE):
            digest.update(chunk)
        stream.seek(0)

        dest = self.path_for(mod_id, filename)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(f".{dest.name}.part")
        size = 0
        try:
            with open(tmp, "wb") as f:
                while chunk := stream.read(_CHUNK_SIZE):
                    f.write(chunk)
                    size += len(chunk)
            os.replace(tmp, dest)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        return StoredBlob(path=dest, size=size, sha256=digest.hexdigest())

    def delete(self, path: str | Path) -> None:
        """Remove a blob; a missing file is not an error."""
        Path(path).unlink(missing_ok=True)

    def delete_mod_dir(self, mod_id: int) -> None:
        mod_dir = self.root / str(mod_id)
        try:
            mod_dir.rmdir()
        except FileNotFoundError:
            pass
        except OSError:
            logger.debug("Mod directory %s not empty, leaving in place", mod_dir)

    def exists(self, path: str | Path) -> bool:
        return Path(path).is_file()


_blob_store = BlobStore(settings.mods_path)


def get_blob_store() -> BlobStore:
    return _blob_store
