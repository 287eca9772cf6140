"""Tag service: list, search and delete published packages by tag."""

from dataclasses import dataclass, field
from typing import List

from common.exceptions import RegistryError
from common.logging_config import get_logger
from registry.base import ArtifactRegistry
from registry.tags import select_package_tags, split_name_version, visible_tags

logger = get_logger(__name__)


@dataclass
class DeleteReport:
    """Outcome of deleting every tag of a logical package."""
    found: int = 0
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.found > 0 and not self.failed


class TagService:
    def __init__(self, registry: ArtifactRegistry, package_name: str):
        self.registry = registry
        self.package_name = package_name

    def _dist_tags(self) -> dict[str, str]:
        try:
            return self.registry.list_dist_tags(self.package_name)
        except RegistryError as e:
            logger.error(f"Error listing package tags: {e}")
            return {}

    def list_packages(self) -> List[str]:
        """Main tags of every published file; chunk tags and 'latest' are hidden."""
        tags = visible_tags(self._dist_tags())
        logger.info(f"Found {len(tags)} published packages in {self.package_name}")
        return tags

    def search_packages(self, keyword: str) -> List[str]:
        """
        Case-insensitive substring search over main tag names.

        This searches tag names only, never file contents.
        """
        needle = keyword.lower()
        matches = [tag for tag in visible_tags(self._dist_tags()) if needle in tag.lower()]
        logger.info(f"Search for '{keyword}' matched {len(matches)} packages")
        return matches

    def delete_package_tag(self, tag: str) -> bool:
        """
        Unpublish the version a tag points at.

        Note that this removes the whole version: any other tag bound to the
        same version loses its artifact too.

        Returns:
            True if the version was unpublished; False if the tag is unknown
            or the registry refused
        """
        dist_tags = self._dist_tags()
        version = dist_tags.get(tag)
        if version is None:
            logger.warning(f"Tag {tag} not found in {self.package_name}")
            return False

        logger.info(f"Deleting tag {tag} ({self.package_name}@{version})")
        try:
            deleted = self.registry.unpublish(self.package_name, version)
        except RegistryError as e:
            logger.error(f"Error deleting package tag {tag}: {e}")
            return False
        if not deleted:
            logger.error(f"Failed to delete tag {tag}")
        return deleted

    def delete_package(self, name_version: str) -> DeleteReport:
        """
        Delete the main tag and all chunk tags of <name>-<version>.

        Chunk tags go first and the main tag last. An interrupted delete
        therefore leaves a main tag with missing chunks, which download
        reports as an incomplete upload.
        """
        name, version = split_name_version(name_version)
        tags = select_package_tags(self._dist_tags(), f"{name}-{version}")

        ordered = sorted(tags.chunks)
        if tags.main_version is not None:
            ordered.append(tags.main)

        report = DeleteReport(found=len(ordered))
        if not ordered:
            logger.warning(f"No package found with name {name} and version {version}")
            return report

        logger.info(f"Found {len(ordered)} tags to delete for {tags.main}")
        for tag in ordered:
            if self.delete_package_tag(tag):
                report.deleted.append(tag)
            else:
                report.failed.append(tag)

        logger.info(f"Deleted {len(report.deleted)}/{report.found} tags")
        return report
