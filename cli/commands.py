"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from chunking.workspace import ScratchWorkspace
from common.exceptions import InputValidationError
from common.logging_config import get_logger
from cli.config import Config, default_config_path
from cli.models import (
    CommandResult,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    PublishCommand,
    SearchCommand,
)
from cli.registry_client import RegistryClient
from cli.utils import ProgressBar, format_file_size
from registry.services import DownloadService, PublishService, TagService

logger = get_logger(__name__)


_config: Optional[Config] = None
_client: Optional[RegistryClient] = None


def get_config() -> Config:
    """Get or create the global Config instance."""
    global _config
    if _config is None:
        _config = Config(default_config_path())
    return _config


def get_client() -> RegistryClient:
    """
    Get or create global RegistryClient instance.

    Returns:
        RegistryClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new RegistryClient instance")
        _client = RegistryClient(get_config())
    return _client


def close_client() -> None:
    """Close the global RegistryClient if one was created."""
    global _client
    if _client is not None:
        _client.close()
        _client = None


def _open_workspace(config: Config) -> ScratchWorkspace:
    return ScratchWorkspace.create(config.get_scratch_dir())


def handle_publish(
    cmd: PublishCommand,
    service: Optional[PublishService] = None,
    config: Optional[Config] = None,
) -> CommandResult:
    """
    Handle 'publish' command.

    Args:
        cmd: PublishCommand with name, version and path (local file or URL)
        service: Optional PublishService for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        CommandResult with the published tag or the failure reason
    """
    logger.info(f"Executing publish command: name={cmd.name} version={cmd.version} path={cmd.path}")
    config = config or get_config()
    if service is None:
        service = PublishService(get_client(), config.get_package_name(), config.get_max_chunk_size())

    with _open_workspace(config) as workspace:
        report = service.publish(
            cmd.name,
            cmd.version,
            cmd.path,
            workspace,
            observer=ProgressBar("Splitting file", formatter=format_file_size),
            upload_observer=ProgressBar("Uploading chunks"),
            source_observer=ProgressBar("Downloading source", formatter=format_file_size),
        )

    if not report.success:
        return CommandResult(False, f"Error: {report.error}")

    if report.total_chunks > 1:
        message = f"Successfully published {report.tag} as {report.total_chunks} chunks"
    else:
        message = f"Successfully published {report.tag}"
    return CommandResult(True, f"{message}\nDownload with: download {report.tag}")


def handle_download(
    cmd: DownloadCommand,
    service: Optional[DownloadService] = None,
    config: Optional[Config] = None,
) -> CommandResult:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with name_version and optional output directory
        service: Optional DownloadService for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        CommandResult with the output path and the integrity outcome
    """
    logger.info(f"Executing download command: {cmd.name_version} output={cmd.output}")
    config = config or get_config()
    if service is None:
        service = DownloadService(get_client(), config.get_package_name())

    output_dir = Path(cmd.output).expanduser() if cmd.output else Path.cwd()
    with _open_workspace(config) as workspace:
        report = service.download(
            cmd.name_version,
            output_dir,
            workspace,
            observer=ProgressBar("Downloading chunks"),
        )

    if not report.success:
        return CommandResult(False, f"Error: {report.error}")

    lines = [f"Downloaded {cmd.name_version} to {report.output_path}"]
    if report.verified is True:
        lines.append("Integrity verified (SHA-256)")
    elif report.verified is False:
        lines.append("Warning: file does not match the recorded SHA-256 hash")
    else:
        lines.append("Warning: no hash recorded, file not verified")
    return CommandResult(True, "\n".join(lines))


def handle_list(
    cmd: ListCommand,
    service: Optional[TagService] = None,
    config: Optional[Config] = None,
) -> CommandResult:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand
        service: Optional TagService for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Formatted list of published packages
    """
    if service is None:
        service = TagService(get_client(), (config or get_config()).get_package_name())

    tags = service.list_packages()
    if not tags:
        return CommandResult(True, "No packages found")
    lines = [f"Published packages ({len(tags)}):"]
    lines.extend(f"  {tag}" for tag in tags)
    return CommandResult(True, "\n".join(lines))


def handle_search(
    cmd: SearchCommand,
    service: Optional[TagService] = None,
    config: Optional[Config] = None,
) -> CommandResult:
    """
    Handle 'search' command.

    Args:
        cmd: SearchCommand with keyword
        service: Optional TagService for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Formatted list of matching packages
    """
    if service is None:
        service = TagService(get_client(), (config or get_config()).get_package_name())

    matches = service.search_packages(cmd.keyword)
    if not matches:
        return CommandResult(True, f"No packages matching '{cmd.keyword}'")
    lines = [f"Packages matching '{cmd.keyword}' ({len(matches)}):"]
    lines.extend(f"  {tag}" for tag in matches)
    return CommandResult(True, "\n".join(lines))


def handle_delete(
    cmd: DeleteCommand,
    service: Optional[TagService] = None,
    config: Optional[Config] = None,
) -> CommandResult:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with name_version
        service: Optional TagService for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        CommandResult with deletion results
    """
    logger.info(f"Executing delete command: {cmd.name_version}")
    if service is None:
        service = TagService(get_client(), (config or get_config()).get_package_name())

    try:
        report = service.delete_package(cmd.name_version)
    except InputValidationError as e:
        return CommandResult(False, f"Error: {e}")

    if report.found == 0:
        return CommandResult(False, f"Error: no package found for {cmd.name_version}")
    if report.failed:
        return CommandResult(
            False,
            f"Deleted {len(report.deleted)}/{report.found} tags; failed: {', '.join(report.failed)}",
        )
    return CommandResult(True, f"Deleted {cmd.name_version} ({report.found} tags)")
