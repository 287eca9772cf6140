"""Scratch workspace handle: owns chunk files, side-car metadata and package dirs on disk."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import (
    CHUNK_FILE_PREFIX,
    CHUNK_METADATA_TEMPLATE,
    MASTER_METADATA_FILENAME,
)
from common.exceptions import ChunkingError
from common.logging_config import get_logger

logger = get_logger(__name__)


class ScratchWorkspace:
    """
    Temporary directory scoped to one publish or download run.

    Usage:
        with ScratchWorkspace.create(base_dir) as workspace:
            chunks = split_file(source, max_size, workspace)

    The directory is removed when the context exits, whether the run
    succeeded or not.
    """

    def __init__(self, root: Path, owns_root: bool = True):
        """
        Args:
            root: Directory that holds the scratch files
            owns_root: Whether cleanup() may remove the directory itself
        """
        self.root = Path(root)
        self.owns_root = owns_root
        self.root.mkdir(parents=True, exist_ok=True)
        self.chunks_dir.mkdir(exist_ok=True)
        self.packages_dir.mkdir(exist_ok=True)
        self.downloads_dir.mkdir(exist_ok=True)

    @classmethod
    def create(cls, base_dir: Optional[Path] = None) -> 'ScratchWorkspace':
        """
        Allocate a fresh, uniquely named workspace.

        Args:
            base_dir: Parent directory (system temp dir when None)

        Returns:
            New ScratchWorkspace

        Raises:
            ChunkingError: If the directory cannot be created
        """
        try:
            if base_dir is not None:
                Path(base_dir).mkdir(parents=True, exist_ok=True)
            root = tempfile.mkdtemp(prefix='byp-', dir=str(base_dir) if base_dir else None)
        except OSError as e:
            raise ChunkingError(f"Cannot create scratch workspace: {e}") from e
        logger.debug(f"Created scratch workspace {root}")
        return cls(Path(root))

    @property
    def chunks_dir(self) -> Path:
        return self.root / 'chunks'

    @property
    def packages_dir(self) -> Path:
        return self.root / 'packages'

    @property
    def downloads_dir(self) -> Path:
        return self.root / 'downloads'

    def chunk_path(self, index: int) -> Path:
        """Path of the chunk file for a zero-based index."""
        return self.chunks_dir / f"{CHUNK_FILE_PREFIX}{index}"

    def chunk_metadata_path(self, index: int) -> Path:
        """Path of the per-chunk descriptor for a zero-based index."""
        return self.root / CHUNK_METADATA_TEMPLATE.format(index=index)

    @property
    def master_metadata_path(self) -> Path:
        return self.root / MASTER_METADATA_FILENAME

    def clear_chunks(self) -> int:
        """
        Delete stale chunk files left by a previous split in this workspace.

        Returns:
            Number of files removed
        """
        removed = 0
        for filepath in self.chunks_dir.glob(f"{CHUNK_FILE_PREFIX}*"):
            filepath.unlink()
            removed += 1
        if removed:
            logger.debug(f"Removed {removed} stale chunk files from {self.chunks_dir}")
        return removed

    def discard(self, path: Path) -> None:
        """Remove a scratch file or directory if it still exists."""
        path = Path(path)
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
        elif path.exists():
            path.unlink()

    def cleanup(self) -> None:
        """Remove everything this workspace wrote."""
        if self.owns_root:
            shutil.rmtree(self.root, ignore_errors=True)
        else:
            for child in (self.chunks_dir, self.packages_dir, self.downloads_dir):
                shutil.rmtree(child, ignore_errors=True)
            for side_car in self.root.glob('metadata*.json'):
                side_car.unlink()
        logger.debug(f"Cleaned up scratch workspace {self.root}")

    def __enter__(self) -> 'ScratchWorkspace':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
