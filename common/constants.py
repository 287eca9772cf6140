"""Project-wide constants (chunk sizing, tag encoding, side-car file names)."""

MAX_CHUNK_SIZE_BYTES: int = 64 * 1024 * 1024  # 64 MiB registry-friendly ceiling
READ_BUFFER_SIZE: int = 64 * 1024

DEFAULT_PACKAGE_NAME: str = "@byp/packages"
DEFAULT_REGISTRY_URL: str = "https://registry.npmjs.org"

CHUNK_TAG_MARKER: str = "-chunk-"
CHUNK_INDEX_WIDTH: int = 3
LATEST_TAG: str = "latest"

CHUNK_FILE_PREFIX: str = "chunk-"
MASTER_METADATA_FILENAME: str = "metadata.json"
CHUNK_METADATA_TEMPLATE: str = "metadata-chunk-{index}.json"
MANIFEST_FILENAME: str = "package.json"

PACKAGE_KEYWORDS: tuple[str, ...] = ("byp", "chunk", "file")
PACKAGE_AUTHOR: str = "byp tool"
PACKAGE_LICENSE: str = "MIT"
