"""Service layer for the publish/download protocol."""

from registry.services.download_service import DownloadReport, DownloadService
from registry.services.publish_service import PublishReport, PublishService
from registry.services.tag_service import DeleteReport, TagService

__all__ = [
    "DownloadReport",
    "DownloadService",
    "PublishReport",
    "PublishService",
    "DeleteReport",
    "TagService",
]
