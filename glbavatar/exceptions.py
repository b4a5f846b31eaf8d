"""
Custom exceptions for asset importing and animation retargeting.
"""


class ImporterError(Exception):
    """Base exception for importer errors."""
    pass


class AssetFetchError(ImporterError):
    """Raised when asset bytes cannot be fetched from a URL or path."""
    pass


class GLBParseError(ImporterError):
    """Raised when a GLB/GLTF payload cannot be parsed."""
    pass


class MeshError(ImporterError):
    """Raised when an import does not yield the expected mesh."""
    pass


class AnimationError(ImporterError):
    """Raised when animation extraction or retargeting fails."""
    pass
