"""HTTP client for an npm-compatible registry, implementing the ArtifactRegistry contract."""

import base64
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from chunking.packager import read_manifest
from cli.config import Config
from common.exceptions import BypError, PackageNotFoundError, RegistryError
from common.logging_config import get_logger
from registry.base import ArtifactRegistry
from registry.tarball import build_tarball, extract_tarball, integrity_of, shasum_of

logger = get_logger(__name__)

INSTALL_ACCEPT = 'application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*'


def escape_package_name(package_name: str) -> str:
    """Registry path segment for a (possibly scoped) package name."""
    return package_name.replace('/', '%2f')


class RegistryClient(ArtifactRegistry):
    """HTTP client for the npm registry API with retry logic and error handling."""

    def __init__(self, config: Config):
        """
        Initialize registry client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_registry_url(),
            timeout=config.get_timeout(),
            follow_redirects=True,
        )
        self.request_id = None
        logger.info(f"Initialized RegistryClient [registry={config.get_registry_url()}]")

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, PUT, DELETE)
            endpoint: Registry path or absolute URL
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            RegistryError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id
        headers.update(self._auth_header())

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )
            except httpx.HTTPError as e:
                raise RegistryError(f"{method} {endpoint} failed: {e}") from e

        if isinstance(last_exception, httpx.TimeoutException):
            raise RegistryError("Request timed out. Registry may be overloaded.") from last_exception
        raise RegistryError("Cannot connect to registry. Check registry_url and network access.") from last_exception

    def _auth_header(self) -> dict:
        token = self.config.get_auth_token()
        return {'Authorization': f'Bearer {token}'} if token else {}

    def _require_auth(self, action: str) -> bool:
        if self.config.get_auth_token():
            return True
        logger.error(f"Cannot {action}: registry is not authenticated. Run 'npm login' or set NPM_TOKEN.")
        return False

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map registry errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        try:
            error_data = response.json()
            detail = error_data.get('error') or error_data.get('reason') or error_data.get('message')
        except ValueError:
            detail = None
        if not detail:
            detail = response.text.strip() if response.text else 'Unknown error'

        status_messages = {
            400: 'Bad request',
            401: 'Not authenticated',
            403: 'Forbidden (check the package scope and your publish rights)',
            404: 'Not found',
            409: 'Conflict (version already exists or revision is stale)',
            413: 'Package too large for the registry',
            429: 'Rate limited by registry',
            500: 'Registry error',
            503: 'Registry unavailable',
        }

        message = status_messages.get(response.status_code, f'HTTP {response.status_code}')
        return f"{message}: {detail}"

    def _fetch_packument(self, package_name: str, write: bool = False) -> dict:
        """
        Fetch the package document listing every version.

        Raises:
            PackageNotFoundError: If the package does not exist
            RegistryError: On any other failure
        """
        params = {'write': 'true'} if write else None
        accept = 'application/json' if write else INSTALL_ACCEPT
        response = self._request_with_retry(
            'GET',
            f'/{escape_package_name(package_name)}',
            params=params,
            headers={'Accept': accept},
        )
        if response.status_code == 404:
            raise PackageNotFoundError(f"Package {package_name} not found in registry")
        if response.status_code != 200:
            raise RegistryError(f"Cannot read {package_name}: {self._format_error(response)}")
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(f"Registry returned invalid JSON for {package_name}") from e

    def list_dist_tags(self, package_name: str) -> dict[str, str]:
        """
        List every tag of a package and the version it points at.

        Returns:
            Tag -> version map ({} when the package does not exist)

        Raises:
            RegistryError: If the registry cannot be queried
        """
        logger.debug(f"Listing dist-tags for {package_name}")
        response = self._request_with_retry(
            'GET',
            f'/-/package/{escape_package_name(package_name)}/dist-tags',
        )
        if response.status_code == 404:
            logger.info(f"Package {package_name} has no published versions")
            return {}
        if response.status_code != 200:
            raise RegistryError(f"Cannot list tags of {package_name}: {self._format_error(response)}")
        try:
            tags = response.json()
        except ValueError as e:
            raise RegistryError("Registry returned invalid dist-tags JSON") from e
        return {str(tag): str(version) for tag, version in tags.items()}

    def install(self, package_name: str, version_or_tag: str, dest_dir: Path) -> Path:
        """
        Download a package version (or tag) and unpack it into dest_dir.

        Args:
            package_name: Registry package name
            version_or_tag: Concrete version or dist-tag
            dest_dir: Directory receiving the package files

        Returns:
            dest_dir

        Raises:
            PackageNotFoundError: If the package or version does not exist
            RegistryError: If the download fails or the tarball integrity does not match
        """
        logger.info(f"Installing {package_name}@{version_or_tag}")
        document = self._fetch_packument(package_name)
        version = document.get('dist-tags', {}).get(version_or_tag, version_or_tag)
        version_doc = document.get('versions', {}).get(version)
        if version_doc is None:
            raise PackageNotFoundError(f"Version {version_or_tag} of {package_name} not found")

        dist = version_doc.get('dist') or {}
        tarball_url = dist.get('tarball')
        if not tarball_url:
            raise RegistryError(f"{package_name}@{version} has no tarball URL")

        response = self._request_with_retry('GET', tarball_url)
        if response.status_code != 200:
            raise RegistryError(f"Cannot download {tarball_url}: {self._format_error(response)}")
        data = response.content

        integrity = dist.get('integrity')
        if integrity and integrity.startswith('sha512-'):
            if integrity_of(data) != integrity:
                raise RegistryError(f"Tarball integrity check failed for {package_name}@{version}")
        elif dist.get('shasum') and shasum_of(data) != dist['shasum']:
            raise RegistryError(f"Tarball shasum check failed for {package_name}@{version}")

        extract_tarball(data, dest_dir)
        logger.debug(f"Installed {package_name}@{version} into {dest_dir}")
        return Path(dest_dir)

    def publish(self, package_dir: Path, tag: str, is_public: bool = True) -> bool:
        """
        Publish a package directory under a dist-tag.

        Mutating calls are not retried: a repeated PUT of the same version
        would be rejected as a conflict anyway.

        Args:
            package_dir: Directory with package.json and its declared files
            tag: Dist-tag to bind to the new version
            is_public: Publish with public access

        Returns:
            True on success, False otherwise (cause is logged)
        """
        if not self._require_auth('publish'):
            return False

        try:
            manifest = read_manifest(package_dir)
            data = build_tarball(package_dir)
        except BypError as e:
            logger.error(f"Error publishing package: {e}")
            return False

        name, version = manifest.name, manifest.version
        unscoped = name.split('/')[-1]
        tarball_name = f"{name}-{version}.tgz"
        registry_url = self.config.get_registry_url()

        version_doc = manifest.model_dump(by_alias=True, exclude_none=True)
        version_doc['_id'] = f"{name}@{version}"
        version_doc['dist'] = {
            'integrity': integrity_of(data),
            'shasum': shasum_of(data),
            'tarball': f"{registry_url}/{name}/-/{unscoped}-{version}.tgz",
        }

        body = {
            '_id': name,
            'name': name,
            'description': manifest.description,
            'dist-tags': {tag: version},
            'versions': {version: version_doc},
            'access': 'public' if is_public else 'restricted',
            '_attachments': {
                tarball_name: {
                    'content_type': 'application/octet-stream',
                    'data': base64.b64encode(data).decode('ascii'),
                    'length': len(data),
                }
            },
        }

        logger.info(f"Publishing {name}@{version} with tag {tag} ({len(data)} bytes)")
        try:
            response = self._request_with_retry(
                'PUT',
                f'/{escape_package_name(name)}',
                max_retries=0,
                json=body,
            )
        except RegistryError as e:
            logger.error(f"Error publishing {name}@{version}: {e}")
            return False

        if response.status_code in (200, 201):
            logger.info(f"Published {name}@{version} with tag {tag}")
            return True

        logger.error(f"Publishing {name}@{version} failed: {self._format_error(response)}")
        return False

    def unpublish(self, package_name: str, version: str) -> bool:
        """
        Remove one version from the registry, along with tags pointing at it.

        Returns:
            True on success, False otherwise (cause is logged)
        """
        if not self._require_auth('unpublish'):
            return False

        escaped = escape_package_name(package_name)
        try:
            document = self._fetch_packument(package_name, write=True)
            versions = document.get('versions', {})
            if version not in versions:
                logger.warning(f"Version {version} of {package_name} not found")
                return False

            if len(versions) == 1:
                response = self._request_with_retry(
                    'DELETE', f"/{escaped}/-rev/{document['_rev']}", max_retries=0
                )
                return self._check_mutation(response, f"unpublish {package_name}")

            tarball_url = (versions[version].get('dist') or {}).get('tarball')
            del versions[version]
            document['dist-tags'] = {
                tag: tagged for tag, tagged in document.get('dist-tags', {}).items() if tagged != version
            }
            document.get('time', {}).pop(version, None)

            response = self._request_with_retry(
                'PUT', f"/{escaped}/-rev/{document['_rev']}", max_retries=0, json=document
            )
            if not self._check_mutation(response, f"unpublish {package_name}@{version}"):
                return False

            if tarball_url:
                refreshed = self._fetch_packument(package_name, write=True)
                response = self._request_with_retry(
                    'DELETE', f"{tarball_url}/-rev/{refreshed['_rev']}", max_retries=0
                )
                if not self._check_mutation(response, f"delete tarball of {package_name}@{version}"):
                    return False
        except (RegistryError, KeyError) as e:
            logger.error(f"Error unpublishing {package_name}@{version}: {e}")
            return False

        logger.info(f"Unpublished {package_name}@{version}")
        return True

    def _check_mutation(self, response: httpx.Response, action: str) -> bool:
        if 200 <= response.status_code < 300:
            return True
        logger.error(f"Failed to {action}: {self._format_error(response)}")
        return False

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
