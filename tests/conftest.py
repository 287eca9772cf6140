"""Shared pytest fixtures for all tests."""

import shutil
from pathlib import Path

import pytest

from chunking.packager import read_manifest
from chunking.workspace import ScratchWorkspace
from cli.config import Config
from registry.base import ArtifactRegistry


class FakeRegistry(ArtifactRegistry):
    """
    In-memory registry double.

    Published package directories are copied into a storage directory and
    addressed by their manifest version; dist-tags map tags to versions
    the way a real registry does.
    """

    def __init__(self, storage: Path, fail_on_publish: int | None = None):
        self.storage = storage
        self.storage.mkdir(parents=True, exist_ok=True)
        self.dist_tags: dict[str, str] = {}
        self.versions: dict[str, Path] = {}
        self.published: list[str] = []
        self.unpublished: list[str] = []
        self.fail_on_publish = fail_on_publish

    def install(self, package_name, version_or_tag, dest_dir):
        version = self.dist_tags.get(version_or_tag, version_or_tag)
        shutil.copytree(self.versions[version], dest_dir, dirs_exist_ok=True)
        return Path(dest_dir)

    def publish(self, package_dir, tag, is_public=True):
        if self.fail_on_publish is not None and len(self.published) + 1 == self.fail_on_publish:
            return False
        version = read_manifest(package_dir).version
        target = self.storage / version
        shutil.copytree(package_dir, target)
        self.versions[version] = target
        self.dist_tags[tag] = version
        self.published.append(tag)
        return True

    def list_dist_tags(self, package_name):
        return dict(self.dist_tags)

    def unpublish(self, package_name, version):
        if version not in self.versions:
            return False
        del self.versions[version]
        self.dist_tags = {tag: v for tag, v in self.dist_tags.items() if v != version}
        self.unpublished.append(version)
        return True


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .byp directory
    """
    config_dir = tmp_path / '.byp'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, tmp_path, monkeypatch):
    """
    Create temporary config instance isolated from the user's environment.

    Returns:
        Config instance with temp config file and no .npmrc
    """
    monkeypatch.delenv('NPM_TOKEN', raising=False)
    config = Config(temp_config_dir / 'config.json', npmrc_path=tmp_path / 'missing.npmrc')
    config.data['scratch_dir'] = str(tmp_path / 'scratch')
    return config


@pytest.fixture
def workspace(tmp_path):
    """Scratch workspace removed after the test."""
    with ScratchWorkspace(tmp_path / 'workspace') as ws:
        yield ws


@pytest.fixture
def fake_registry(tmp_path):
    return FakeRegistry(tmp_path / 'registry-storage')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a small sample file for single-package publishes.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'sample.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def large_file(tmp_path):
    """
    Create a 2500-byte file with non-repeating content.

    With a 1000-byte chunk size it splits into chunks of 1000, 1000 and 500 bytes.
    """
    file_path = tmp_path / 'payload.bin'
    file_path.write_bytes(bytes((i * 7 + i // 256) % 256 for i in range(2500)))
    return file_path


class RecordingObserver:
    """Progress observer that remembers every update."""

    def __init__(self):
        self.updates: list[tuple[int, int]] = []

    def on_progress(self, current, total):
        self.updates.append((current, total))


@pytest.fixture
def observer():
    return RecordingObserver()
