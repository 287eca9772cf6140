"""Tag codec: encodes package identity and chunk order in the registry's flat tag namespace.

Master tag:  <name>-<version>
Chunk tag:   <name>-<version>-chunk-<NNN>, NNN = zero-padded 1-based index

The registry lists tags in no particular order, so the numeric suffix of a
chunk tag is the only source of chunk ordering on download.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from common.constants import CHUNK_INDEX_WIDTH, CHUNK_TAG_MARKER, LATEST_TAG
from common.exceptions import InputValidationError, MalformedTagError


def master_tag(name: str, version: str) -> str:
    return f"{name}-{version}"


def chunk_tag(name: str, version: str, index: int) -> str:
    """
    Tag for the chunk at a zero-based index.

    Args:
        name: Logical package name (platform suffix included)
        version: Logical version
        index: Zero-based chunk index

    Returns:
        Tag string, e.g. "zed-0.3.4-chunk-001" for index 0
    """
    if index < 0:
        raise ValueError(f"Chunk index must be non-negative, got {index}")
    return f"{master_tag(name, version)}{CHUNK_TAG_MARKER}{index + 1:0{CHUNK_INDEX_WIDTH}d}"


def is_chunk_tag(tag: str) -> bool:
    return CHUNK_TAG_MARKER in tag


def parse_chunk_index(tag: str) -> int:
    """
    Recover the zero-based chunk index encoded in a chunk tag.

    Raises:
        MalformedTagError: If the tag has no numeric 1-based suffix
    """
    _, marker, suffix = tag.rpartition(CHUNK_TAG_MARKER)
    if not marker or not (suffix.isascii() and suffix.isdigit()):
        raise MalformedTagError(f"Tag '{tag}' does not end in a numeric chunk index")
    display_index = int(suffix)
    if display_index < 1:
        raise MalformedTagError(f"Tag '{tag}' has chunk index {suffix}; indices start at 1")
    return display_index - 1


def split_name_version(name_version: str) -> tuple[str, str]:
    """
    Split "<name>-<version>" at the last dash.

    Raises:
        InputValidationError: If there is no dash or either side is empty
    """
    name, dash, version = name_version.strip().rpartition('-')
    if not dash or not name or not version:
        raise InputValidationError(
            f"Invalid package name format '{name_version}'. Expected <name>-<version>"
        )
    return name, version


def belongs_to(tag: str, main: str) -> bool:
    """Whether a tag is the main tag or one of its chunk tags."""
    return tag == main or tag.startswith(f"{main}{CHUNK_TAG_MARKER}")


def visible_tags(tags: Iterable[str]) -> list[str]:
    """Main tags only: chunk tags and the registry's 'latest' alias removed."""
    return [tag for tag in tags if not is_chunk_tag(tag) and tag != LATEST_TAG]


@dataclass
class PackageTags:
    """Tags of one logical package, split into its main tag and chunk tags."""
    main: str
    main_version: Optional[str] = None
    chunks: dict[str, str] = field(default_factory=dict)

    @property
    def is_chunked(self) -> bool:
        return bool(self.chunks)

    def ordered_chunks(self) -> list[tuple[int, str, str]]:
        """
        Chunk tags sorted by their encoded index.

        Returns:
            (zero-based index, tag, version) tuples

        Raises:
            MalformedTagError: If a chunk tag cannot be parsed
        """
        decoded = [(parse_chunk_index(tag), tag, version) for tag, version in self.chunks.items()]
        return sorted(decoded)


def select_package_tags(dist_tags: dict[str, str], name_version: str) -> PackageTags:
    """
    Pick the tags of one logical package out of a full tag inventory.

    Args:
        dist_tags: Tag -> version map as listed by the registry
        name_version: "<name>-<version>" of the logical package

    Returns:
        PackageTags; main_version is None when the main tag is absent
    """
    main = name_version.strip()
    selected = PackageTags(main=main)
    for tag, version in dist_tags.items():
        if not belongs_to(tag, main):
            continue
        if tag == main:
            selected.main_version = version
        else:
            selected.chunks[tag] = version
    return selected


def missing_indices(indices: Iterable[int], total_chunks: int) -> list[int]:
    """Zero-based indices in range(total_chunks) that are absent."""
    present = set(indices)
    return [i for i in range(total_chunks) if i not in present]
