"""Builds and unpacks the gzip tarballs npm-style registries store per version."""

import base64
import hashlib
import io
import tarfile
from pathlib import Path, PurePosixPath

from chunking.packager import read_manifest
from common.constants import MANIFEST_FILENAME
from common.exceptions import ArtifactContentError

TARBALL_ROOT = 'package'
# npm normalizes every entry to this timestamp (1985-10-26T08:15:00Z)
TARBALL_MTIME = 499162500


def build_tarball(package_dir: Path) -> bytes:
    """
    Pack package.json and the files its manifest declares under 'package/'.

    Raises:
        ArtifactContentError: If the manifest is missing or a declared file does not exist
    """
    package_dir = Path(package_dir)
    manifest = read_manifest(package_dir)
    names = [MANIFEST_FILENAME] + [f for f in manifest.files if f != MANIFEST_FILENAME]

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode='w:gz') as tar:
        for name in names:
            source = package_dir / name
            if not source.is_file():
                raise ArtifactContentError(f"File '{name}' declared in {MANIFEST_FILENAME} is missing")
            info = tar.gettarinfo(str(source), arcname=f"{TARBALL_ROOT}/{name}")
            info.mtime = TARBALL_MTIME
            info.mode = 0o644
            info.uid = info.gid = 0
            info.uname = info.gname = ''
            with open(source, 'rb') as f:
                tar.addfile(info, f)
    return buffer.getvalue()


def integrity_of(data: bytes) -> str:
    """Subresource-integrity string (sha512) for tarball bytes."""
    return 'sha512-' + base64.b64encode(hashlib.sha512(data).digest()).decode('ascii')


def shasum_of(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def extract_tarball(data: bytes, dest_dir: Path) -> Path:
    """
    Unpack a package tarball into dest_dir.

    The tarball's single top-level directory is stripped, so files land
    directly in dest_dir. Links, devices and entries escaping dest_dir
    are rejected.

    Returns:
        dest_dir

    Raises:
        ArtifactContentError: If the archive is corrupt or unsafe
    """
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode='r:*') as tar:
            for member in tar.getmembers():
                if member.isdir():
                    continue
                if not member.isfile():
                    raise ArtifactContentError(f"Unsupported tarball entry: {member.name}")
                relative = _strip_root(member.name)
                target = dest_dir.joinpath(*relative.parts)
                extracted = tar.extractfile(member)
                if extracted is None:
                    raise ArtifactContentError(f"Unreadable tarball entry: {member.name}")
                target.parent.mkdir(parents=True, exist_ok=True)
                with extracted, open(target, 'wb') as out:
                    while True:
                        piece = extracted.read(1024 * 1024)
                        if not piece:
                            break
                        out.write(piece)
    except tarfile.TarError as e:
        raise ArtifactContentError(f"Corrupt package tarball: {e}") from e
    return dest_dir


def _strip_root(name: str) -> PurePosixPath:
    path = PurePosixPath(name)
    if path.is_absolute() or '..' in path.parts:
        raise ArtifactContentError(f"Tarball entry escapes package directory: {name}")
    parts = path.parts[1:] if len(path.parts) > 1 else path.parts
    if not parts:
        raise ArtifactContentError(f"Empty tarball entry name: {name}")
    return PurePosixPath(*parts)
