"""Abstract contract of the artifact registry consumed by the orchestrators."""

from abc import ABC, abstractmethod
from pathlib import Path


class ArtifactRegistry(ABC):
    """
    Registry operations the publish/download protocol relies on.

    Implementations are blocking; callers issue one call at a time.
    """

    @abstractmethod
    def install(self, package_name: str, version_or_tag: str, dest_dir: Path) -> Path:
        """
        Materialize a package's files locally.

        Returns:
            Directory holding the package files

        Raises:
            RegistryError: If the package cannot be fetched
        """

    @abstractmethod
    def publish(self, package_dir: Path, tag: str, is_public: bool = True) -> bool:
        """Upload the manifest-declared files of package_dir under a tag."""

    @abstractmethod
    def list_dist_tags(self, package_name: str) -> dict[str, str]:
        """
        Full tag -> version inventory; an unknown package yields {}.

        Raises:
            RegistryError: If the registry cannot be queried
        """

    @abstractmethod
    def unpublish(self, package_name: str, version: str) -> bool:
        """Remove one concrete version (and every tag bound to it)."""
