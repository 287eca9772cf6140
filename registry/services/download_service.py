"""Download orchestration: locate tags, fetch artifacts, reorder chunks and reassemble."""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chunking.checksum import verify_file_checksum
from chunking.metadata import load_descriptor
from chunking.packager import read_manifest
from chunking.workspace import ScratchWorkspace
from common.constants import MASTER_METADATA_FILENAME, MANIFEST_FILENAME
from common.exceptions import (
    ArtifactContentError,
    BypError,
    IncompleteUploadError,
    MetadataError,
    PackageNotFoundError,
)
from common.logging_config import get_logger
from common.types import ProgressObserver, notify_progress
from registry.base import ArtifactRegistry
from registry.schemas import ChunkDescriptor, MasterDescriptor
from registry.tags import PackageTags, missing_indices, select_package_tags, split_name_version

logger = get_logger(__name__)


@dataclass
class DownloadReport:
    """Outcome of one download run."""
    success: bool
    output_path: Optional[Path] = None
    verified: Optional[bool] = None
    total_chunks: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class FetchedChunk:
    index: int
    tag: str
    payload: Path
    descriptor: Optional[ChunkDescriptor]


class DownloadService:
    """
    Drives a download run strictly sequentially.

    Integrity mismatches are reported as warnings: the caller still gets
    the bytes. Every structural problem (missing tags, files or metadata)
    aborts the run.
    """

    def __init__(self, registry: ArtifactRegistry, package_name: str):
        self.registry = registry
        self.package_name = package_name

    def download(
        self,
        name_version: str,
        output_dir: Path,
        workspace: ScratchWorkspace,
        observer: Optional[ProgressObserver] = None,
    ) -> DownloadReport:
        """
        Fetch and reassemble the file published as <name>-<version>.

        Args:
            name_version: Main tag of the logical package
            output_dir: Directory receiving the file (created if missing)
            workspace: Scratch workspace for installed artifacts
            observer: Progress observer counting fetched chunks

        Returns:
            DownloadReport; success is False when the run aborted
        """
        report = DownloadReport(success=False)
        try:
            self._run(name_version, Path(output_dir), workspace, observer, report)
        except (BypError, OSError) as e:
            logger.error(f"Download of {name_version} failed: {e}")
            report.error = str(e)
            return report

        report.success = True
        return report

    def _run(
        self,
        name_version: str,
        output_dir: Path,
        workspace: ScratchWorkspace,
        observer: Optional[ProgressObserver],
        report: DownloadReport,
    ) -> None:
        name, version = split_name_version(name_version)
        tags = select_package_tags(self.registry.list_dist_tags(self.package_name), f"{name}-{version}")

        if tags.main_version is None and not tags.chunks:
            raise PackageNotFoundError(f"No package found with name {name} and version {version}")
        logger.info(f"Found {len(tags.chunks) + (tags.main_version is not None)} tags for package {tags.main}")

        if tags.main_version is None:
            raise IncompleteUploadError(
                f"Main package tag {tags.main} not found; the publish was interrupted before completion"
            )

        output_dir.mkdir(parents=True, exist_ok=True)
        main_dir = self._install(tags.main, tags.main_version, workspace)
        if read_manifest(main_dir).main:
            if tags.is_chunked:
                logger.warning(
                    f"Ignoring {len(tags.chunks)} chunk tags of {tags.main}; the main package carries the whole file"
                )
            self._download_single(tags, main_dir, output_dir, observer, report)
        else:
            self._download_chunked(tags, main_dir, output_dir, workspace, observer, report)

    def _install(self, tag: str, version: str, workspace: ScratchWorkspace) -> Path:
        logger.debug(f"Fetching {tag} ({self.package_name}@{version})")
        return self.registry.install(self.package_name, version, workspace.downloads_dir / tag)

    def _download_single(
        self,
        tags: PackageTags,
        package_dir: Path,
        output_dir: Path,
        observer: Optional[ProgressObserver],
        report: DownloadReport,
    ) -> None:
        logger.info("Downloading single file package...")
        payload = _payload_of(package_dir, tags.main)
        descriptor = load_descriptor(_metadata_of(package_dir, payload.name, tags.main))

        output_file = output_dir / _safe_file_name(descriptor.original_file_name)
        shutil.move(payload, output_file)
        notify_progress(observer, 1, 1)

        if isinstance(descriptor, MasterDescriptor):
            expected = descriptor.file_hash
        elif descriptor.total_chunks == 1:
            expected = descriptor.chunk_hash
        else:
            expected = None

        report.output_path = output_file
        report.total_chunks = 1
        report.verified = _verify(output_file, expected)
        logger.info(f"Successfully downloaded {descriptor.original_file_name} to {output_file}")

    def _download_chunked(
        self,
        tags: PackageTags,
        main_dir: Path,
        output_dir: Path,
        workspace: ScratchWorkspace,
        observer: Optional[ProgressObserver],
        report: DownloadReport,
    ) -> None:
        logger.info("Downloading chunked package...")
        master = load_descriptor(main_dir / MASTER_METADATA_FILENAME)
        if not isinstance(master, MasterDescriptor):
            raise MetadataError(f"Main package {tags.main} does not carry a master descriptor")

        ordered = tags.ordered_chunks()
        stale = [tag for index, tag, _ in ordered if index >= master.total_chunks]
        if stale:
            logger.warning(
                f"Ignoring chunk tags {stale} beyond the {master.total_chunks} chunks recorded for {tags.main}"
            )
            ordered = [entry for entry in ordered if entry[0] < master.total_chunks]

        recovered = [index for index, _, _ in ordered]
        duplicates = sorted({i for i in recovered if recovered.count(i) > 1})
        if duplicates:
            raise IncompleteUploadError(f"Duplicate chunk indices {[i + 1 for i in duplicates]} for {tags.main}")
        missing = missing_indices(recovered, master.total_chunks)
        if missing:
            raise IncompleteUploadError(
                f"Missing chunks {[i + 1 for i in missing]} of {master.total_chunks} for {tags.main}"
            )

        fetched = []
        for position, (index, tag, version) in enumerate(ordered, start=1):
            logger.info(f"Downloading chunk with tag {tag}...")
            fetched.append(self._fetch_chunk(index, tag, version, workspace))
            notify_progress(observer, position, len(ordered))

        logger.info("Reassembling file...")
        file_name = _safe_file_name(master.original_file_name)
        assembled = workspace.downloads_dir / 'assembled' / file_name
        assembled.parent.mkdir(parents=True, exist_ok=True)
        with open(assembled, 'wb') as out:
            for chunk in fetched:
                with open(chunk.payload, 'rb') as piece:
                    shutil.copyfileobj(piece, out)

        written = assembled.stat().st_size
        if written != master.original_file_size:
            logger.warning(
                f"Reassembled size {written} differs from recorded size {master.original_file_size}"
            )

        output_file = output_dir / file_name
        shutil.move(assembled, output_file)
        report.output_path = output_file
        report.total_chunks = master.total_chunks
        report.verified = _verify(output_file, master.file_hash)
        logger.info(f"Successfully downloaded and reassembled {master.original_file_name} to {output_file}")

    def _fetch_chunk(self, index: int, tag: str, version: str, workspace: ScratchWorkspace) -> FetchedChunk:
        package_dir = self._install(tag, version, workspace)
        payload = _payload_of(package_dir, tag)

        descriptor = None
        try:
            loaded = load_descriptor(_metadata_of(package_dir, payload.name, tag))
        except (MetadataError, ArtifactContentError) as e:
            logger.warning(f"Chunk {tag} has no usable metadata ({e}); relying on tag order")
        else:
            if isinstance(loaded, ChunkDescriptor):
                descriptor = loaded
                if loaded.chunk_index != index:
                    logger.warning(
                        f"Chunk {tag} metadata claims index {loaded.chunk_index}, tag encodes {index}; using tag"
                    )
                if not verify_file_checksum(payload, loaded.chunk_hash):
                    logger.warning(f"Chunk {tag} does not match its recorded hash")
        return FetchedChunk(index=index, tag=tag, payload=payload, descriptor=descriptor)


def _payload_of(package_dir: Path, tag: str) -> Path:
    manifest = read_manifest(package_dir)
    if not manifest.main:
        raise ArtifactContentError(f"Package with tag {tag} declares no payload file")
    payload = package_dir / manifest.main
    if not payload.is_file():
        raise ArtifactContentError(f"Payload file {manifest.main} not found in package with tag {tag}")
    return payload


def _metadata_of(package_dir: Path, payload_name: str, tag: str) -> Path:
    manifest = read_manifest(package_dir)
    candidates = [
        f for f in manifest.files
        if f != payload_name and f != MANIFEST_FILENAME and f.endswith('.json') and f.startswith('metadata')
    ]
    if not candidates:
        raise MetadataError(f"Metadata file not found in package with tag {tag}")
    return package_dir / candidates[0]


def _safe_file_name(name: str) -> str:
    """Strip directory components a descriptor might carry."""
    safe = Path(name.replace('\\', '/')).name
    if safe in ('', '.', '..'):
        raise MetadataError(f"Invalid original file name in metadata: {name!r}")
    return safe


def _verify(output_file: Path, expected: Optional[str]) -> Optional[bool]:
    if expected is None:
        logger.info("No hash recorded; file delivered unverified")
        return None
    if verify_file_checksum(output_file, expected):
        logger.info("File integrity verified")
        return True
    logger.warning(f"File integrity check failed for {output_file}: content does not match the recorded hash")
    return False
