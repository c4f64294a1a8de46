"""
spectra-cache exception hierarchy.

All custom exceptions inherit from SpectraCacheError so callers can
catch a single base type when they want a broad safety net.  Cache
misses are never exceptions; they surface as ``None`` or ``False``.
"""


class SpectraCacheError(Exception):
    """Base exception for all spectra-cache errors."""


class ConfigurationError(SpectraCacheError, ValueError):
    """Raised when filter sizing or settings are invalid."""


class FilterMismatchError(ConfigurationError):
    """Raised when merging two filters with different bit or hash counts."""
