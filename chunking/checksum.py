"""Provides SHA-256 digests for files and chunks, and the verification helpers built on them."""

import hashlib
from dataclasses import dataclass
from pathlib import Path

from common.constants import READ_BUFFER_SIZE
from common.logging_config import get_logger

logger = get_logger(__name__)


class IncrementalChecksumCalculator:
    """
    Calculate SHA-256 checksum incrementally for streaming data.

    Usage:
        calculator = IncrementalChecksumCalculator()
        calculator.update(piece1)
        calculator.update(piece2)
        final_checksum = calculator.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)

    def finalize(self) -> str:
        self._finalized = True
        return self._hasher.hexdigest()


def compute_file_checksum(path: Path, piece_size: int = READ_BUFFER_SIZE) -> str:
    """
    Stream a file once and return its SHA-256 digest.

    Args:
        path: File to hash
        piece_size: Read buffer size in bytes

    Returns:
        64-character lowercase hex digest

    Raises:
        OSError: If the file cannot be read
    """
    calculator = IncrementalChecksumCalculator()
    with open(path, 'rb') as f:
        while True:
            piece = f.read(piece_size)
            if not piece:
                break
            calculator.update(piece)
    return calculator.finalize()


def verify_file_checksum(path: Path, expected: str) -> bool:
    """
    Check a file against an expected digest.

    An unreadable file counts as a failed verification; the error is
    logged and never propagated.

    Args:
        path: File to verify
        expected: Expected SHA-256 checksum (hex string)

    Returns:
        True if the digest matches, False otherwise
    """
    try:
        actual = compute_file_checksum(path)
    except OSError as e:
        logger.error(f"Error verifying file integrity of {path}: {e}")
        return False
    return actual == expected.lower()


@dataclass(frozen=True)
class ReassemblyCheck:
    """Outcome of comparing a reassembled file with its reference."""
    matched: bool
    authoritative: bool

    def __bool__(self) -> bool:
        return self.matched


def verify_reassembly(original: Path, reassembled: Path) -> ReassemblyCheck:
    """
    Compare a reassembled file with the original it was built from.

    When the original is not available locally, only existence and a
    non-zero size of the reassembled file are checked, and the result is
    marked non-authoritative.

    Args:
        original: Reference file
        reassembled: File produced by concatenating chunks

    Returns:
        ReassemblyCheck describing the comparison
    """
    original = Path(original)
    reassembled = Path(reassembled)
    try:
        if not original.exists():
            logger.warning(f"Reference file {original} unavailable, falling back to existence check")
            ok = reassembled.is_file() and reassembled.stat().st_size > 0
            return ReassemblyCheck(matched=ok, authoritative=False)

        matched = compute_file_checksum(original) == compute_file_checksum(reassembled)
        return ReassemblyCheck(matched=matched, authoritative=True)
    except OSError as e:
        logger.error(f"Error verifying file reassembly: {e}")
        return ReassemblyCheck(matched=False, authoritative=True)
