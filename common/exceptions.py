"""Custom exception classes shared by the chunking, registry and CLI layers."""


class BypError(Exception):
    """
    Base exception class for all byp errors.
    """
    pass


class InputValidationError(BypError):
    """
    Raised when a name, version, path or chunk size supplied by the caller is invalid.
    """
    pass


class ChunkingError(BypError):
    """
    Raised when the source file cannot be read or scratch storage cannot be written.
    """
    pass


class RegistryError(BypError):
    """
    Raised when a registry call (install, publish, list, unpublish) fails.
    """
    pass


class PackageNotFoundError(RegistryError):
    """
    Raised when no tag in the registry matches the requested package.
    """
    pass


class IncompleteUploadError(RegistryError):
    """
    Raised when the main tag or some chunk tags of a package are missing,
    which means a publish was interrupted.
    """
    pass


class MalformedTagError(BypError):
    """
    Raised when a chunk tag does not carry a parsable 1-based index.
    """
    pass


class MetadataError(BypError):
    """
    Raised when a metadata side-car is missing or does not match the descriptor schema.
    """
    pass


class ArtifactContentError(BypError):
    """
    Raised when a fetched artifact lacks its manifest or payload file.
    """
    pass
