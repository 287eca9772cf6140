"""Tests for CLI command handlers."""

from pathlib import Path
from unittest.mock import ANY, Mock

from cli.commands import (
    handle_delete,
    handle_download,
    handle_list,
    handle_publish,
    handle_search,
)
from cli.models import (
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    PublishCommand,
    SearchCommand,
)
from registry.services import (
    DeleteReport,
    DownloadReport,
    DownloadService,
    PublishReport,
    PublishService,
    TagService,
)


def test_handle_publish(temp_config):
    """Test publish command handler with mocked service."""
    mock_service = Mock(spec=PublishService)
    mock_service.publish.return_value = PublishReport(success=True, tag='myapp-1.0.0', total_chunks=3)

    cmd = PublishCommand(name='myapp', version='1.0.0', path='big.zip')
    result = handle_publish(cmd, service=mock_service, config=temp_config)

    assert result.success
    assert 'Successfully published myapp-1.0.0 as 3 chunks' in result.message
    mock_service.publish.assert_called_once_with(
        'myapp', '1.0.0', 'big.zip', ANY, observer=ANY, upload_observer=ANY, source_observer=ANY
    )


def test_handle_publish_cleans_scratch_workspace(temp_config):
    mock_service = Mock(spec=PublishService)
    mock_service.publish.return_value = PublishReport(success=True, tag='a-1.0.0', total_chunks=1)

    handle_publish(PublishCommand(name='a', version='1.0.0', path='f'), service=mock_service, config=temp_config)

    workspace = mock_service.publish.call_args.args[3]
    assert not workspace.root.exists()
    assert workspace.root.parent == temp_config.get_scratch_dir()


def test_handle_publish_failure(temp_config):
    mock_service = Mock(spec=PublishService)
    mock_service.publish.return_value = PublishReport(success=False, error='File f does not exist')

    result = handle_publish(PublishCommand(name='a', version='1.0.0', path='f'), service=mock_service,
                            config=temp_config)

    assert not result.success
    assert result.exit_code == 1
    assert 'does not exist' in result.message


def test_handle_download(temp_config, tmp_path):
    mock_service = Mock(spec=DownloadService)
    mock_service.download.return_value = DownloadReport(
        success=True, output_path=tmp_path / 'big.zip', verified=True, total_chunks=3
    )

    cmd = DownloadCommand(name_version='myapp-1.0.0', output=str(tmp_path))
    result = handle_download(cmd, service=mock_service, config=temp_config)

    assert result.success
    assert 'Integrity verified' in result.message
    assert mock_service.download.call_args.args[:2] == ('myapp-1.0.0', Path(tmp_path))


def test_handle_download_defaults_to_cwd(temp_config, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    mock_service = Mock(spec=DownloadService)
    mock_service.download.return_value = DownloadReport(success=True, output_path=tmp_path / 'a', verified=None)

    result = handle_download(DownloadCommand(name_version='a-1.0.0'), service=mock_service, config=temp_config)

    assert mock_service.download.call_args.args[1] == Path.cwd()
    assert 'not verified' in result.message


def test_handle_download_integrity_warning(temp_config, tmp_path):
    mock_service = Mock(spec=DownloadService)
    mock_service.download.return_value = DownloadReport(success=True, output_path=tmp_path / 'a', verified=False)

    result = handle_download(DownloadCommand(name_version='a-1.0.0', output=str(tmp_path)),
                             service=mock_service, config=temp_config)

    assert result.success
    assert 'Warning' in result.message


def test_handle_download_failure(temp_config, tmp_path):
    mock_service = Mock(spec=DownloadService)
    mock_service.download.return_value = DownloadReport(success=False, error='Missing chunks [2] of 3')

    result = handle_download(DownloadCommand(name_version='a-1.0.0', output=str(tmp_path)),
                             service=mock_service, config=temp_config)

    assert not result.success
    assert 'Missing chunks' in result.message


def test_handle_list():
    """Test list command handler with mocked service."""
    mock_service = Mock(spec=TagService)
    mock_service.list_packages.return_value = ['myapp-1.0.0', 'zed-macos-0.3.4']

    result = handle_list(ListCommand(), service=mock_service)

    assert 'Published packages (2)' in result.message
    assert 'zed-macos-0.3.4' in result.message


def test_handle_list_empty():
    mock_service = Mock(spec=TagService)
    mock_service.list_packages.return_value = []

    assert handle_list(ListCommand(), service=mock_service).message == 'No packages found'


def test_handle_search():
    mock_service = Mock(spec=TagService)
    mock_service.search_packages.return_value = ['myapp-1.0.0']

    result = handle_search(SearchCommand(keyword='myapp'), service=mock_service)

    assert 'myapp-1.0.0' in result.message
    mock_service.search_packages.assert_called_once_with('myapp')


def test_handle_search_no_match():
    mock_service = Mock(spec=TagService)
    mock_service.search_packages.return_value = []

    result = handle_search(SearchCommand(keyword='zzz'), service=mock_service)

    assert result.success
    assert "No packages matching 'zzz'" in result.message


def test_handle_delete():
    mock_service = Mock(spec=TagService)
    mock_service.delete_package.return_value = DeleteReport(
        found=3, deleted=['a-1.0.0-chunk-001', 'a-1.0.0-chunk-002', 'a-1.0.0']
    )

    result = handle_delete(DeleteCommand(name_version='a-1.0.0'), service=mock_service)

    assert result.success
    assert '3 tags' in result.message


def test_handle_delete_partial_failure():
    mock_service = Mock(spec=TagService)
    mock_service.delete_package.return_value = DeleteReport(
        found=2, deleted=['a-1.0.0'], failed=['a-1.0.0-chunk-001']
    )

    result = handle_delete(DeleteCommand(name_version='a-1.0.0'), service=mock_service)

    assert not result.success
    assert 'a-1.0.0-chunk-001' in result.message


def test_handle_delete_not_found():
    mock_service = Mock(spec=TagService)
    mock_service.delete_package.return_value = DeleteReport(found=0)

    result = handle_delete(DeleteCommand(name_version='ghost-1.0.0'), service=mock_service)

    assert not result.success
    assert 'no package found' in result.message


def test_handle_delete_malformed_name(fake_registry):
    result = handle_delete(DeleteCommand(name_version='noversion'), service=TagService(fake_registry, '@byp/packages'))

    assert not result.success
    assert 'Expected <name>-<version>' in result.message


def test_publish_then_download_through_handlers(temp_config, fake_registry, large_file, tmp_path):
    temp_config.data['max_chunk_size'] = 1000
    publisher = PublishService(fake_registry, temp_config.get_package_name(), temp_config.get_max_chunk_size())
    downloader = DownloadService(fake_registry, temp_config.get_package_name())

    published = handle_publish(
        PublishCommand(name='myapp', version='1.0.0', path=str(large_file)),
        service=publisher, config=temp_config,
    )
    downloaded = handle_download(
        DownloadCommand(name_version='myapp-1.0.0', output=str(tmp_path / 'out')),
        service=downloader, config=temp_config,
    )

    assert published.success, published.message
    assert downloaded.success, downloaded.message
    assert (tmp_path / 'out' / 'payload.bin').read_bytes() == large_file.read_bytes()
