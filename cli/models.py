"""Command request and response data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class PublishCommand:
    """Publish a local file or URL."""

    name: str
    version: str
    path: str
    command: Literal["publish"] = "publish"


@dataclass(frozen=True)
class DownloadCommand:
    """Download and reassemble a published file."""

    name_version: str
    output: str | None = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class ListCommand:
    """List published packages."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class SearchCommand:
    """Search published packages by keyword."""

    keyword: str
    command: Literal["search"] = "search"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a published package and its chunks."""

    name_version: str
    command: Literal["delete"] = "delete"


CommandRequest = (
    PublishCommand
    | DownloadCommand
    | ListCommand
    | SearchCommand
    | DeleteCommand
)


@dataclass(frozen=True)
class CommandResult:
    """Text to show the user and whether the command succeeded."""

    success: bool
    message: str

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1
