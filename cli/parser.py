"""Command parser for CLI input."""

import shlex
from typing import Optional

from cli.models import (
    CommandRequest,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    PublishCommand,
    SearchCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


PUBLISH_OPTIONS = {
    "--name": "name",
    "-n": "name",
    "--version": "version",
    "-v": "version",
    "--path": "path",
    "-p": "path",
}

DOWNLOAD_OPTIONS = {
    "--output": "output",
    "-o": "output",
}


def parse_command(input_line: str) -> CommandRequest:
    """Parse a line typed at the REPL into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Publish/Download/List/Search/Delete)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    return parse_tokens(tokens)


def parse_tokens(tokens: list[str]) -> CommandRequest:
    """Parse already split arguments (e.g. sys.argv[1:]) into a CommandRequest.

    Raises:
        ParseError: If command syntax is invalid
    """
    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]
    # `byp package publish ...` is accepted as an alias of `byp publish ...`
    if command_name == "package" and len(tokens) > 1:
        tokens = tokens[1:]
        command_name = tokens[0]

    if command_name == "publish":
        return _parse_publish(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "search":
        return _parse_search(tokens[1:])
    elif command_name == "delete":
        return _parse_delete(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_options(args: list[str], options: dict[str, str], command: str) -> tuple[dict[str, str], list[str]]:
    """Split args into option values (--opt value / --opt=value) and positionals."""
    values: dict[str, str] = {}
    positionals: list[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        key, inline_value = arg, None
        if arg.startswith("--") and "=" in arg:
            key, inline_value = arg.split("=", 1)

        if key in options:
            if inline_value is None:
                if i + 1 >= len(args):
                    raise ParseError(f"{command}: option {key} requires a value")
                inline_value = args[i + 1]
                i += 1
            values[options[key]] = inline_value
        elif arg.startswith("-") and arg != "-":
            raise ParseError(f"{command}: unknown option {arg}")
        else:
            positionals.append(arg)
        i += 1
    return values, positionals


def _parse_publish(args: list[str]) -> PublishCommand:
    """Parse 'publish --name <name> --version <version> --path <path>' command."""
    values, positionals = _parse_options(args, PUBLISH_OPTIONS, "publish")
    if positionals:
        raise ParseError(f"publish: unexpected argument {positionals[0]}")

    missing = [opt for opt in ("name", "version", "path") if not values.get(opt)]
    if missing:
        raise ParseError(f"publish requires --{', --'.join(missing)}")

    return PublishCommand(name=values["name"], version=values["version"], path=values["path"])


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <name-version> [--output <dir>]' command."""
    values, positionals = _parse_options(args, DOWNLOAD_OPTIONS, "download")
    if len(positionals) != 1:
        raise ParseError("download requires exactly 1 argument: <name-version> [--output <dir>]")

    output: Optional[str] = values.get("output")
    return DownloadCommand(name_version=positionals[0], output=output)


def _parse_list(args: list[str]) -> ListCommand:
    """Parse 'list' command."""
    if args:
        raise ParseError("list takes no arguments")
    return ListCommand()


def _parse_search(args: list[str]) -> SearchCommand:
    """Parse 'search <keyword>' command."""
    if len(args) != 1:
        raise ParseError("search requires exactly 1 argument: <keyword>")
    return SearchCommand(keyword=args[0])


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <name-version>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly 1 argument: <name-version>")
    return DeleteCommand(name_version=args[0])
