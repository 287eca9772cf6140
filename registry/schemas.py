"""Pydantic schemas for metadata side-cars and package manifests."""

import json
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.exceptions import MetadataError


class DescriptorBase(BaseModel):
    """Fields shared by master and chunk descriptors."""
    model_config = ConfigDict(populate_by_name=True, extra='forbid', frozen=True)

    original_file_name: str = Field(alias='originalFileName', min_length=1)
    total_chunks: int = Field(alias='totalChunks', ge=1)
    original_file_size: int = Field(alias='originalFileSize', ge=0)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class MasterDescriptor(DescriptorBase):
    """Describes the whole original file."""
    file_hash: str = Field(alias='fileHash', pattern=r'^[0-9a-f]{64}$')


class ChunkDescriptor(DescriptorBase):
    """Describes one chunk of the original file."""
    chunk_index: int = Field(alias='chunkIndex', ge=0)
    chunk_hash: str = Field(alias='chunkHash', pattern=r'^[0-9a-f]{64}$')


Descriptor = Union[MasterDescriptor, ChunkDescriptor]


def parse_descriptor(raw: str) -> Descriptor:
    """
    Parse a side-car document into the matching descriptor case.

    Args:
        raw: JSON text

    Returns:
        MasterDescriptor when 'fileHash' is present, ChunkDescriptor when
        'chunkIndex'/'chunkHash' are present

    Raises:
        MetadataError: If the document is not valid JSON or matches neither case
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Metadata is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MetadataError("Metadata must be a JSON object")

    has_master = 'fileHash' in data
    has_chunk = 'chunkIndex' in data or 'chunkHash' in data
    if has_master and has_chunk:
        raise MetadataError("Metadata mixes master ('fileHash') and chunk ('chunkIndex'/'chunkHash') fields")

    model = ChunkDescriptor if has_chunk else MasterDescriptor
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MetadataError(f"Invalid {model.__name__}: {e}") from e


class PublishConfig(BaseModel):
    access: str = 'public'


class PackageManifest(BaseModel):
    """The package.json written into every artifact."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str
    description: str = ''
    main: Optional[str] = None
    files: List[str]
    keywords: List[str] = []
    author: str = ''
    license: str = ''
    publish_config: PublishConfig = Field(default_factory=PublishConfig, alias='publishConfig')

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
