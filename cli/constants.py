"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["publish", "download", "list", "search", "delete", "clear", "exit", "help"]

COMMAND_OPTIONS = {
    "publish": ["--name", "--version", "--path"],
    "download": ["--output"],
}

PATH_OPTIONS = ("--path", "-p", "--output", "-o")

STYLE = Style.from_dict(
    {
        "prompt": "#CB3837 bold",
        "command": "#0088ff bold",
    }
)

NPM_RED = "\033[38;2;203;56;55m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
RESET = "\033[0m"

LOGO = f"""{NPM_RED}
 ██████╗ ██╗   ██╗██████╗
 ██╔══██╗╚██╗ ██╔╝██╔══██╗
 ██████╔╝ ╚████╔╝ ██████╔╝
 ██╔══██╗  ╚██╔╝  ██╔═══╝
 ██████╔╝   ██║   ██║
 ╚═════╝    ╚═╝   ╚═╝
{RESET}"""

WELCOME_TITLE = "byp - large files on an npm registry"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "byp> "

HELP_TEXT = """Available commands:
  publish --name <name> --version <version> --path <file-or-url>
                                      Split a file into chunks and publish them
  download <name-version> [--output <dir>]
                                      Download and reassemble a published file
  list                                List published packages
  search <keyword>                    Search published packages by tag name
  delete <name-version>               Unpublish a package and all of its chunks
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Files larger than the chunk size (64 MiB by default) are published as one
package per chunk plus a metadata-only main package.
Examples:
  publish --name myapp --version 1.0.0 --path ./my-large-file.zip
  publish -n zed -v 0.3.4 -p https://example.com/Zed-x86_64.dmg
  download myapp-1.0.0 --output ./downloads
  search myapp
  delete myapp-1.0.0"""
