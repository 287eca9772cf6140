"""Tests for the download orchestrator."""

import shutil

import pytest

from chunking.packager import VersionStamper
from chunking.workspace import ScratchWorkspace
from registry.services import DownloadService, PublishService

PACKAGE = '@byp/packages'


@pytest.fixture
def publish(fake_registry, tmp_path):
    """Publish a file into the fake registry with a 1000-byte chunk size."""
    stamper = VersionStamper(clock=lambda: 1.0)

    def _publish(source, name='myapp', version='1.0.0'):
        service = PublishService(fake_registry, PACKAGE, 1000, stamper=stamper)
        with ScratchWorkspace(tmp_path / 'publish-scratch') as ws:
            report = service.publish(name, version, str(source), ws)
        assert report.success, report.error
        return report
    return _publish


@pytest.fixture
def downloader(fake_registry):
    return DownloadService(fake_registry, PACKAGE)


def test_chunked_round_trip(publish, downloader, large_file, tmp_path, workspace):
    publish(large_file)
    out_dir = tmp_path / 'out'

    report = downloader.download('myapp-1.0.0', out_dir, workspace)

    assert report.success
    assert report.verified is True
    assert report.total_chunks == 3
    assert report.output_path == out_dir / 'payload.bin'
    assert report.output_path.read_bytes() == large_file.read_bytes()


def test_single_file_round_trip(publish, downloader, sample_file, tmp_path, workspace):
    publish(sample_file)

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is True
    assert report.output_path.name == 'sample.txt'
    assert report.output_path.read_text() == sample_file.read_text()


def test_empty_file_round_trip(publish, downloader, tmp_path, workspace):
    empty = tmp_path / 'empty.bin'
    empty.write_bytes(b'')
    publish(empty)

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is True
    assert report.output_path.read_bytes() == b''


def test_chunks_are_reordered_by_tag_index(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    fake_registry.dist_tags = dict(reversed(list(fake_registry.dist_tags.items())))

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.output_path.read_bytes() == large_file.read_bytes()


def test_download_progress_counts_chunks(publish, downloader, large_file, tmp_path, workspace, observer):
    publish(large_file)
    downloader.download('myapp-1.0.0', tmp_path / 'out', workspace, observer=observer)
    assert observer.updates == [(1, 3), (2, 3), (3, 3)]


def test_unknown_package_fails(downloader, tmp_path, workspace):
    report = downloader.download('ghost-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert 'No package found' in report.error


def test_malformed_name_version_fails(downloader, tmp_path, workspace):
    report = downloader.download('noversion', tmp_path / 'out', workspace)

    assert not report.success
    assert 'Expected <name>-<version>' in report.error


def test_missing_main_tag_is_incomplete_upload(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    del fake_registry.dist_tags['myapp-1.0.0']

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert 'interrupted' in report.error


def test_interrupted_publish_cannot_be_downloaded(fake_registry, downloader, large_file, tmp_path, workspace):
    fake_registry.fail_on_publish = 3
    service = PublishService(fake_registry, PACKAGE, 1000, stamper=VersionStamper(clock=lambda: 1.0))
    with ScratchWorkspace(tmp_path / 'publish-scratch') as ws:
        assert not service.publish('myapp', '1.0.0', str(large_file), ws).success

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert not (tmp_path / 'out' / 'payload.bin').exists()


def test_missing_chunk_tag_fails(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    del fake_registry.dist_tags['myapp-1.0.0-chunk-002']

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert 'Missing chunks [2] of 3' in report.error


def test_main_without_any_chunk_tags_fails(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    for tag in [t for t in fake_registry.dist_tags if '-chunk-' in t]:
        del fake_registry.dist_tags[tag]

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert 'Missing chunks [1, 2, 3] of 3' in report.error


def test_chunk_tags_beyond_recorded_count_are_ignored(
    publish, downloader, fake_registry, large_file, tmp_path, workspace
):
    publish(large_file)
    fake_registry.dist_tags['myapp-1.0.0-chunk-004'] = fake_registry.dist_tags['myapp-1.0.0-chunk-003']

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.total_chunks == 3
    assert report.output_path.read_bytes() == large_file.read_bytes()


def test_corrupted_chunk_is_delivered_with_failed_verification(
    publish, downloader, fake_registry, large_file, tmp_path, workspace
):
    publish(large_file)
    stored = fake_registry.versions[fake_registry.dist_tags['myapp-1.0.0-chunk-002']]
    (stored / 'chunk-1').write_bytes(b'\x00' * 1000)

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is False
    assert report.output_path.read_bytes() != large_file.read_bytes()
    assert report.output_path.stat().st_size == large_file.stat().st_size


def test_corrupted_single_file_fails_verification(publish, downloader, fake_registry, sample_file, tmp_path, workspace):
    publish(sample_file)
    stored = fake_registry.versions[fake_registry.dist_tags['myapp-1.0.0']]
    (stored / 'sample.txt').write_text('tampered')

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is False


def test_chunk_without_metadata_still_reassembles(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    stored = fake_registry.versions[fake_registry.dist_tags['myapp-1.0.0-chunk-001']]
    (stored / 'metadata-chunk-0.json').write_text('not json')

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is True


def test_prefix_sibling_is_not_mixed_in(publish, downloader, fake_registry, large_file, sample_file, tmp_path, workspace):
    publish(large_file, version='1.0.0')
    publish(sample_file, version='1.0.0-beta')

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.output_path.read_bytes() == large_file.read_bytes()


def test_republish_with_fewer_chunks(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    smaller = tmp_path / 'smaller' / 'payload.bin'
    smaller.parent.mkdir()
    smaller.write_bytes(large_file.read_bytes()[:1500])
    publish(smaller)
    assert 'myapp-1.0.0-chunk-003' in fake_registry.dist_tags

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is True
    assert report.total_chunks == 2
    assert report.output_path.read_bytes() == smaller.read_bytes()


def test_republish_small_file_over_chunked_one(
    publish, downloader, fake_registry, large_file, sample_file, tmp_path, workspace
):
    publish(large_file)
    publish(sample_file)

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert report.success
    assert report.verified is True
    assert report.output_path.name == 'sample.txt'
    assert report.output_path.read_text() == sample_file.read_text()


def test_non_ascii_chunk_index_fails_cleanly(publish, downloader, fake_registry, large_file, tmp_path, workspace):
    publish(large_file)
    fake_registry.dist_tags['myapp-1.0.0-chunk-²'] = fake_registry.dist_tags['myapp-1.0.0-chunk-001']

    report = downloader.download('myapp-1.0.0', tmp_path / 'out', workspace)

    assert not report.success
    assert 'numeric chunk index' in report.error


def test_failed_reassembly_leaves_no_partial_output(
    publish, downloader, large_file, tmp_path, workspace, monkeypatch
):
    publish(large_file)
    real_copyfileobj = shutil.copyfileobj

    def broken_copyfileobj(src, dst, *args, **kwargs):
        if 'assembled' in str(getattr(dst, 'name', '')):
            dst.write(src.read(10))
            raise OSError('disk full')
        return real_copyfileobj(src, dst, *args, **kwargs)

    monkeypatch.setattr(shutil, 'copyfileobj', broken_copyfileobj)
    out_dir = tmp_path / 'out'

    report = downloader.download('myapp-1.0.0', out_dir, workspace)

    assert not report.success
    assert 'disk full' in report.error
    assert list(out_dir.iterdir()) == []
