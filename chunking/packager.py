"""Wraps a payload and its metadata side-car into a publishable package directory."""

import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from common.constants import (
    MANIFEST_FILENAME,
    PACKAGE_AUTHOR,
    PACKAGE_KEYWORDS,
    PACKAGE_LICENSE,
)
from common.exceptions import ArtifactContentError, ChunkingError, InputValidationError
from common.logging_config import get_logger
from registry.schemas import PackageManifest

logger = get_logger(__name__)

SEMVER_PATTERN = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?'
    r'(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)


def is_valid_version(version: str) -> bool:
    """Whether a version string is acceptable to the registry (semantic versioning)."""
    return bool(SEMVER_PATTERN.match(version))


class VersionStamper:
    """
    Generates unique registry versions of the form <version>-<name>-<millis>.

    Every tag of a publish run gets its own version, so republishing a tag
    never collides with a version already taken. Stamps from one instance
    are strictly increasing even when issued within the same millisecond.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0

    def next(self, version: str, name: str) -> str:
        stamp = int(self._clock() * 1000)
        if stamp <= self._last:
            stamp = self._last + 1
        self._last = stamp

        safe_name = re.sub(r'[^0-9A-Za-z-]+', '-', name).strip('-') or 'file'
        candidate = f"{version}-{safe_name}-{stamp}"
        if not is_valid_version(candidate):
            raise InputValidationError(
                f"Version '{version}' does not form a valid registry version (got '{candidate}')"
            )
        return candidate


def create_package(
    package_name: str,
    version: str,
    tag: str,
    payload_path: Optional[Path],
    metadata_path: Path,
    dest_root: Optional[Path] = None,
) -> Path:
    """
    Build a self-describing package directory.

    The manifest lists the payload (when given) followed by the metadata
    file, and names the payload as 'main'. Without a payload the package
    carries metadata only, which is how the master artifact of a chunked
    file is published.

    Args:
        package_name: Scoped registry package name (e.g. "@byp/packages")
        version: Registry-valid version string
        tag: Tag the package will be published under (used in the description)
        payload_path: Chunk or whole-file payload, or None
        metadata_path: Descriptor side-car
        dest_root: Parent directory for the package dir (system temp when None)

    Returns:
        Path to the created package directory

    Raises:
        InputValidationError: If the version is invalid or file names collide
        ChunkingError: If files cannot be copied
    """
    if not is_valid_version(version):
        raise InputValidationError(f"Invalid package version: {version}")

    metadata_path = Path(metadata_path)
    files = []
    main = None
    if payload_path is not None:
        payload_path = Path(payload_path)
        main = payload_path.name
        if main in (metadata_path.name, MANIFEST_FILENAME):
            raise InputValidationError(f"Payload file name '{main}' collides with package metadata")
        files.append(main)
    files.append(metadata_path.name)

    if main is not None:
        description = f"Chunk {tag} of a large file published with byp"
    else:
        description = f"Metadata for {tag}, a large file published with byp"

    manifest = PackageManifest(
        name=package_name,
        version=version,
        description=description,
        main=main,
        files=files,
        keywords=list(PACKAGE_KEYWORDS),
        author=PACKAGE_AUTHOR,
        license=PACKAGE_LICENSE,
    )

    try:
        if dest_root is not None:
            Path(dest_root).mkdir(parents=True, exist_ok=True)
        package_dir = Path(tempfile.mkdtemp(prefix='byp-package-', dir=str(dest_root) if dest_root else None))
        if payload_path is not None:
            shutil.copyfile(payload_path, package_dir / payload_path.name)
        shutil.copyfile(metadata_path, package_dir / metadata_path.name)
        (package_dir / MANIFEST_FILENAME).write_text(manifest.to_json(), encoding='utf-8')
    except OSError as e:
        raise ChunkingError(f"Cannot assemble package for tag {tag}: {e}") from e

    logger.debug(f"Created package {package_name}@{version} for tag {tag} at {package_dir}")
    return package_dir


def read_manifest(package_dir: Path) -> PackageManifest:
    """
    Load the package.json of a package directory.

    Raises:
        ArtifactContentError: If the manifest is missing or malformed
    """
    manifest_path = Path(package_dir) / MANIFEST_FILENAME
    try:
        raw = manifest_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ArtifactContentError(f"{MANIFEST_FILENAME} not found in {package_dir}: {e}") from e
    try:
        return PackageManifest.model_validate_json(raw)
    except ValidationError as e:
        raise ArtifactContentError(f"Invalid {MANIFEST_FILENAME} in {package_dir}: {e}") from e
