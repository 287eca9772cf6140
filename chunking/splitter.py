"""Splits a source file into bounded-size chunk files in a single forward pass."""

from pathlib import Path
from typing import BinaryIO, Optional

from chunking.workspace import ScratchWorkspace
from common.constants import READ_BUFFER_SIZE
from common.exceptions import ChunkingError, InputValidationError
from common.logging_config import get_logger
from common.types import Chunk, ProgressObserver, notify_progress

logger = get_logger(__name__)


def expected_chunk_count(file_size: int, max_chunk_size: int) -> int:
    """
    Number of chunks a file of the given size splits into.

    Empty files and files no larger than the maximum yield one chunk.
    """
    if file_size <= max_chunk_size:
        return 1
    return -(-file_size // max_chunk_size)


def split_file(
    source: Path,
    max_chunk_size: int,
    workspace: ScratchWorkspace,
    observer: Optional[ProgressObserver] = None,
    buffer_size: int = READ_BUFFER_SIZE,
) -> list[Chunk]:
    """
    Split a file into ordered chunks under the workspace's chunk directory.

    Reads the source once, front to back, in units of at most buffer_size
    bytes that never straddle a chunk boundary, and streams each unit into
    the current chunk file. Stale chunk files from an earlier split in the
    same workspace are removed first.

    Args:
        source: File to split
        max_chunk_size: Maximum chunk size in bytes (> 0)
        workspace: Scratch workspace receiving the chunk files
        observer: Optional progress observer, called after every unit
        buffer_size: Read unit in bytes

    Returns:
        Chunks in index order, covering the file exactly once

    Raises:
        InputValidationError: If max_chunk_size is not positive
        ChunkingError: If the source cannot be read or a chunk cannot be written
    """
    if max_chunk_size <= 0:
        raise InputValidationError(f"Chunk size must be positive, got {max_chunk_size}")
    if buffer_size <= 0:
        raise InputValidationError(f"Buffer size must be positive, got {buffer_size}")

    source = Path(source)
    try:
        total_size = source.stat().st_size
    except OSError as e:
        raise ChunkingError(f"Cannot read source file {source}: {e}") from e

    try:
        workspace.clear_chunks()
    except OSError as e:
        raise ChunkingError(f"Cannot clear scratch directory {workspace.chunks_dir}: {e}") from e

    logger.info(
        f"Splitting {source.name} ({total_size} bytes) into chunks of at most {max_chunk_size} bytes"
    )

    try:
        with open(source, 'rb') as src:
            chunks = _split_stream(src, total_size, max_chunk_size, workspace, observer, buffer_size)
    except ChunkingError:
        raise
    except OSError as e:
        raise ChunkingError(f"Cannot read source file {source}: {e}") from e

    logger.info(f"Split {source.name} into {len(chunks)} chunk(s)")
    return chunks


def _split_stream(
    src: BinaryIO,
    total_size: int,
    max_chunk_size: int,
    workspace: ScratchWorkspace,
    observer: Optional[ProgressObserver],
    buffer_size: int,
) -> list[Chunk]:
    chunks: list[Chunk] = []
    processed = 0
    index = 0

    while True:
        chunk_path = workspace.chunk_path(index)
        try:
            dst = open(chunk_path, 'wb')
        except OSError as e:
            raise ChunkingError(f"Cannot create chunk file {chunk_path}: {e}") from e

        written = 0
        with dst:
            while written < max_chunk_size:
                piece = src.read(min(buffer_size, max_chunk_size - written))
                if not piece:
                    break
                try:
                    dst.write(piece)
                except OSError as e:
                    raise ChunkingError(f"Cannot write chunk {index} to {chunk_path}: {e}") from e
                written += len(piece)
                processed += len(piece)
                notify_progress(observer, processed, total_size)

        if written == 0 and chunks:
            # source ended exactly on a chunk boundary
            chunk_path.unlink()
            break

        chunks.append(Chunk(index=index, size=written, local_path=chunk_path))
        logger.debug(f"Wrote chunk {index} ({written} bytes) to {chunk_path}")

        if written < max_chunk_size:
            break
        index += 1

    if total_size == 0:
        notify_progress(observer, 0, 0)

    return chunks
