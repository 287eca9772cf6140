"""Custom completer for the byp REPL with path autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMAND_OPTIONS, COMMANDS, PATH_OPTIONS


class BypCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Option completion for 'publish' and 'download'
    - Local path completion after --path / --output
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]
        previous = tokens[-1] if is_typing_new_token else (tokens[-2] if len(tokens) > 1 else "")

        if previous in PATH_OPTIONS:
            yield from self._complete_paths(current_word, dirs_only=previous in ("--output", "-o"))
            return

        if current_word.startswith("-") or is_typing_new_token:
            yield from self._complete_options(command, current_word, set(tokens[1:]))

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_options(self, command: str, partial: str, used: set) -> Iterable[Completion]:
        for option in COMMAND_OPTIONS.get(command, []):
            if option in used:
                continue
            if option.startswith(partial):
                yield Completion(option, start_position=-len(partial))

    def _complete_paths(self, partial: str, dirs_only: bool) -> Iterable[Completion]:
        """Complete local file system entries relative to the working directory."""
        expanded = Path(partial).expanduser() if partial else Path(".")
        if partial.endswith("/") or not partial:
            directory, prefix = expanded, ""
        else:
            directory, prefix = expanded.parent, expanded.name

        base = partial[: len(partial) - len(prefix)]
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return

        for entry in entries:
            if not entry.name.startswith(prefix) or entry.name.startswith("."):
                continue
            if entry.is_dir():
                yield Completion(f"{base}{entry.name}/", start_position=-len(partial))
            elif not dirs_only:
                yield Completion(f"{base}{entry.name}", start_position=-len(partial))
