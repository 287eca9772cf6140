"""Builds master and per-chunk descriptors and persists them as side-car JSON files."""

from pathlib import Path

from chunking.checksum import compute_file_checksum
from chunking.workspace import ScratchWorkspace
from common.exceptions import ChunkingError, MetadataError
from common.logging_config import get_logger
from registry.schemas import ChunkDescriptor, Descriptor, MasterDescriptor, parse_descriptor

logger = get_logger(__name__)


class MetadataBuilder:
    """Writes descriptors next to where the packager picks them up."""

    def __init__(self, workspace: ScratchWorkspace):
        self.workspace = workspace

    def describe_file(self, path: Path, total_chunks: int) -> MasterDescriptor:
        """
        Describe the whole original file and persist metadata.json.

        Args:
            path: Original file
            total_chunks: Number of chunks the file was split into

        Returns:
            MasterDescriptor carrying the whole-file digest

        Raises:
            ChunkingError: If the file cannot be read or the side-car cannot be written
        """
        path = Path(path)
        try:
            descriptor = MasterDescriptor(
                original_file_name=path.name,
                original_file_size=path.stat().st_size,
                total_chunks=total_chunks,
                file_hash=compute_file_checksum(path),
            )
        except OSError as e:
            raise ChunkingError(f"Cannot describe {path}: {e}") from e

        self._persist(self.workspace.master_metadata_path, descriptor)
        logger.debug(f"Master descriptor for {path.name}: {descriptor.file_hash}")
        return descriptor

    def describe_chunk(self, path: Path, total_chunks: int, index: int, chunk_path: Path) -> ChunkDescriptor:
        """
        Describe one chunk and persist metadata-chunk-<index>.json.

        Args:
            path: Original file the chunk was cut from
            total_chunks: Number of chunks of the original file
            index: Zero-based chunk index
            chunk_path: Chunk file on disk

        Returns:
            ChunkDescriptor carrying the chunk-local digest
        """
        path = Path(path)
        try:
            descriptor = ChunkDescriptor(
                original_file_name=path.name,
                original_file_size=path.stat().st_size,
                total_chunks=total_chunks,
                chunk_index=index,
                chunk_hash=compute_file_checksum(chunk_path),
            )
        except OSError as e:
            raise ChunkingError(f"Cannot describe chunk {index} of {path}: {e}") from e

        self._persist(self.workspace.chunk_metadata_path(index), descriptor)
        return descriptor

    def _persist(self, target: Path, descriptor: Descriptor) -> None:
        try:
            target.write_text(descriptor.to_json(), encoding='utf-8')
        except OSError as e:
            raise ChunkingError(f"Cannot write metadata file {target}: {e}") from e


def load_descriptor(path: Path) -> Descriptor:
    """
    Read a side-car back into its descriptor case.

    Raises:
        MetadataError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding='utf-8')
    except OSError as e:
        raise MetadataError(f"Metadata file {path.name} not readable: {e}") from e
    return parse_descriptor(raw)
