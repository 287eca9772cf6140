"""CLI entry point."""

import sys
import os

from common.logging_config import setup_logging
from cli.commands import close_client
from cli.constants import HELP_TEXT
from cli.parser import ParseError, parse_tokens
from cli.repl import dispatch_command, repl_loop


def run_once(args: list[str]) -> int:
    """Run a single command given on the command line and return its exit code."""
    if args[0] in ("help", "--help", "-h"):
        print(HELP_TEXT)
        return 0
    try:
        cmd_obj = parse_tokens(args)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    result = dispatch_command(cmd_obj)
    print(result.message, file=sys.stdout if result.success else sys.stderr)
    return result.exit_code


def main(argv: list[str] | None = None) -> int:
    """Entry point for CLI."""
    args = list(sys.argv[1:] if argv is None else argv)
    debug = '--debug' in args
    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'INFO')

    logger = setup_logging(log_level=log_level)

    if debug:
        logger.info("Debug logging enabled")
        args = [a for a in args if a != '--debug']

    logger.debug("CLI starting...")
    try:
        if args:
            return run_once(args)
        repl_loop()
        return 0
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        close_client()
        logger.debug("CLI exiting")


if __name__ == "__main__":
    sys.exit(main())
