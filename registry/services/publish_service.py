"""Publish orchestration: split, describe, package and upload a file chunk by chunk."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from chunking.metadata import MetadataBuilder
from chunking.packager import VersionStamper, create_package
from chunking.splitter import split_file
from chunking.workspace import ScratchWorkspace
from common.constants import MAX_CHUNK_SIZE_BYTES
from common.exceptions import BypError, ChunkingError, InputValidationError, RegistryError
from common.logging_config import get_logger
from common.types import Chunk, ProgressObserver, notify_progress
from registry.base import ArtifactRegistry
from registry.tags import chunk_tag, master_tag

logger = get_logger(__name__)

LINUX_KEYWORDS = (
    'linux', 'unix', 'ubuntu', 'debian', 'fedora', 'centos',
    'redhat', 'suse', 'arch', 'manjaro',
)


def detect_platform_suffix(filename: str) -> str:
    """
    Guess the target platform of a release file.

    The extension decides first; otherwise well-known words in the file
    name do. Returns '' when nothing matches.
    """
    lower = filename.lower()
    extension = Path(lower).suffix

    if extension == '.dmg':
        return '-macos'
    if extension == '.exe':
        return '-windows'
    if extension in ('.deb', '.rpm', '.appimage'):
        return '-linux'

    if 'macos' in lower or 'darwin' in lower:
        return '-macos'
    if 'win' in lower and 'window' not in lower:
        return '-windows'
    if any(keyword in lower for keyword in LINUX_KEYWORDS):
        return '-linux'
    return ''


def is_remote_source(source: str) -> bool:
    return source.startswith(('http://', 'https://'))


def fetch_remote_source(
    url: str,
    workspace: ScratchWorkspace,
    client: Optional[httpx.Client] = None,
    observer: Optional[ProgressObserver] = None,
) -> Path:
    """
    Stream a remote file into the workspace.

    Args:
        url: http(s) URL of the file
        workspace: Scratch workspace receiving the download
        client: httpx client to use (a short-lived one when None)
        observer: Optional download progress observer

    Returns:
        Local path of the downloaded file, named after the URL's last path segment

    Raises:
        InputValidationError: If the URL has no file name or answers with an error status
        ChunkingError: If the download cannot be written
    """
    file_name = Path(unquote(urlparse(url).path)).name
    if not file_name:
        raise InputValidationError(f"Cannot derive a file name from URL {url}")

    target = workspace.root / 'source' / file_name
    target.parent.mkdir(parents=True, exist_ok=True)

    owns_client = client is None
    if client is None:
        client = httpx.Client(follow_redirects=True, timeout=None)

    logger.info(f"Downloading source file from {url}")
    try:
        with client.stream('GET', url) as response:
            if response.status_code != 200:
                raise InputValidationError(f"Cannot download {url}: HTTP {response.status_code}")
            total = int(response.headers.get('Content-Length', 0))
            downloaded = 0
            with open(target, 'wb') as f:
                for piece in response.iter_bytes(chunk_size=64 * 1024):
                    f.write(piece)
                    downloaded += len(piece)
                    notify_progress(observer, downloaded, total or downloaded)
    except httpx.HTTPError as e:
        raise InputValidationError(f"Cannot download {url}: {e}") from e
    except OSError as e:
        raise ChunkingError(f"Cannot write downloaded file {target}: {e}") from e
    finally:
        if owns_client:
            client.close()

    logger.info(f"Downloaded {file_name} ({downloaded} bytes)")
    return target


@dataclass
class PublishReport:
    """Outcome of one publish run."""
    success: bool
    tag: Optional[str] = None
    total_chunks: int = 0
    published_tags: list[str] = field(default_factory=list)
    error: Optional[str] = None


class PublishService:
    """
    Drives a publish run strictly sequentially.

    For a chunked file every chunk tag is uploaded first and the main tag
    last, so the presence of the main tag marks a completed publish.
    """

    def __init__(
        self,
        registry: ArtifactRegistry,
        package_name: str,
        max_chunk_size: int = MAX_CHUNK_SIZE_BYTES,
        stamper: Optional[VersionStamper] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.registry = registry
        self.package_name = package_name
        self.max_chunk_size = max_chunk_size
        self.stamper = stamper or VersionStamper()
        self.http_client = http_client

    def publish(
        self,
        name: str,
        version: str,
        source: str,
        workspace: ScratchWorkspace,
        observer: Optional[ProgressObserver] = None,
        upload_observer: Optional[ProgressObserver] = None,
        source_observer: Optional[ProgressObserver] = None,
    ) -> PublishReport:
        """
        Publish a local file or http(s) URL under <name>-<version>.

        Args:
            name: Logical package name (a platform suffix may be appended)
            version: Logical version
            source: Local path or URL of the file
            workspace: Scratch workspace for chunks, side-cars and packages
            observer: Progress observer for splitting (bytes)
            upload_observer: Progress observer for uploads (chunks)
            source_observer: Progress observer for fetching a URL source (bytes)

        Returns:
            PublishReport; success is False when any step failed
        """
        report = PublishReport(success=False)
        try:
            self._run(name, version, source, workspace, observer, upload_observer, source_observer, report)
        except (BypError, OSError) as e:
            logger.error(f"Publish of {name}-{version} failed: {e}")
            report.error = str(e)
            return report

        report.success = True
        return report

    def _run(
        self,
        name: str,
        version: str,
        source: str,
        workspace: ScratchWorkspace,
        observer: Optional[ProgressObserver],
        upload_observer: Optional[ProgressObserver],
        source_observer: Optional[ProgressObserver],
        report: PublishReport,
    ) -> None:
        name = (name or '').strip()
        version = (version or '').strip()
        source = (source or '').strip()
        if not name or not version or not source:
            raise InputValidationError("name, version, and path are required")

        if is_remote_source(source):
            file_path = fetch_remote_source(source, workspace, client=self.http_client, observer=source_observer)
        else:
            file_path = Path(source).expanduser()
        if not file_path.is_file():
            raise InputValidationError(f"File {file_path} does not exist")

        suffix = detect_platform_suffix(file_path.name)
        platform_name = f"{name}{suffix}"
        main = master_tag(platform_name, version)
        report.tag = main
        logger.info(f"Detected platform: {suffix.lstrip('-') or 'generic'}; package will be {main}")

        chunks = split_file(file_path, self.max_chunk_size, workspace, observer=observer)
        report.total_chunks = len(chunks)

        builder = MetadataBuilder(workspace)
        builder.describe_file(file_path, len(chunks))

        if len(chunks) == 1:
            logger.info("File fits in a single chunk, uploading directly")
            builder.describe_chunk(file_path, 1, 0, chunks[0].local_path)
            self._upload(
                platform_name, version, main,
                payload=file_path,
                metadata=workspace.chunk_metadata_path(0),
                workspace=workspace,
                failure=f"Failed to publish main package {main}",
            )
            workspace.discard(chunks[0].local_path)
            report.published_tags.append(main)
            notify_progress(upload_observer, 1, 1)
            logger.info(f"Successfully published {main} (single file, no chunking)")
            return

        for chunk in chunks:
            tag = self._publish_chunk(file_path, platform_name, version, chunk, len(chunks), builder, workspace)
            report.published_tags.append(tag)
            notify_progress(upload_observer, chunk.display_index, len(chunks))

        self._upload(
            platform_name, version, main,
            payload=None,
            metadata=workspace.master_metadata_path,
            workspace=workspace,
            failure=f"Failed to publish main package {main}",
        )
        report.published_tags.append(main)
        logger.info(f"Successfully published {main} with {len(chunks)} chunks")

    def _publish_chunk(
        self,
        file_path: Path,
        platform_name: str,
        version: str,
        chunk: Chunk,
        total_chunks: int,
        builder: MetadataBuilder,
        workspace: ScratchWorkspace,
    ) -> str:
        tag = chunk_tag(platform_name, version, chunk.index)
        builder.describe_chunk(file_path, total_chunks, chunk.index, chunk.local_path)
        try:
            self._upload(
                platform_name, version, tag,
                payload=chunk.local_path,
                metadata=workspace.chunk_metadata_path(chunk.index),
                workspace=workspace,
                failure=f"Failed to publish chunk {chunk.display_index} of {total_chunks} (tag {tag})",
            )
        finally:
            workspace.discard(chunk.local_path)
            workspace.discard(workspace.chunk_metadata_path(chunk.index))
        return tag

    def _upload(
        self,
        platform_name: str,
        version: str,
        tag: str,
        payload: Optional[Path],
        metadata: Path,
        workspace: ScratchWorkspace,
        failure: str,
    ) -> None:
        package_version = self.stamper.next(version, platform_name)
        logger.info(f"Creating package with version {package_version} and tag {tag}")
        package_dir = create_package(
            self.package_name,
            package_version,
            tag,
            payload,
            metadata,
            dest_root=workspace.packages_dir,
        )
        try:
            if not self.registry.publish(package_dir, tag, is_public=True):
                raise RegistryError(failure)
        finally:
            workspace.discard(package_dir)
