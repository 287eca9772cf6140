"""Tests for CLI utility helpers and the one-shot entry point."""

import io
import logging
from unittest.mock import patch

import pytest

from cli.main import main
from cli.models import CommandResult
from cli.utils import ProgressBar, format_file_size


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("cli.main.setup_logging", return_value=logging.getLogger("byp.tests.main")):
        yield


@pytest.mark.parametrize('size,expected', [
    (0, '0 B'),
    (512, '512 B'),
    (1536, '1.50 KiB'),
    (64 * 1024 * 1024, '64.00 MiB'),
    (3 * 1024 ** 3, '3.00 GiB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_progress_bar_finishes_once():
    stream = io.StringIO()
    bar = ProgressBar('Uploading chunks', stream=stream)

    bar.on_progress(1, 2)
    bar.on_progress(2, 2)
    bar.on_progress(2, 2)

    output = stream.getvalue()
    assert 'Uploading chunks: 2 / 2' in output
    assert '100.0%' in output
    assert output.count('\n') == 1


def test_progress_bar_handles_empty_total():
    stream = io.StringIO()
    ProgressBar('Splitting file', formatter=format_file_size, stream=stream).on_progress(0, 0)
    assert '0 B / 0 B' in stream.getvalue()


def test_main_runs_one_shot_command(capsys):
    with patch('cli.main.dispatch_command', return_value=CommandResult(True, 'Published packages (0)')) as dispatch:
        assert main(['list']) == 0

    dispatch.assert_called_once()
    assert 'Published packages (0)' in capsys.readouterr().out


def test_main_failure_exit_code(capsys):
    with patch('cli.main.dispatch_command', return_value=CommandResult(False, 'Error: boom')):
        assert main(['delete', 'a-1.0.0']) == 1
    assert 'Error: boom' in capsys.readouterr().err


def test_main_parse_error(capsys):
    assert main(['upload', 'x']) == 2
    assert 'Unknown command' in capsys.readouterr().err


def test_main_help(capsys):
    assert main(['help']) == 0
    assert 'Available commands' in capsys.readouterr().out
