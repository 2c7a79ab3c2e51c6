"""
Common Error Constants

Centralized error messages shared by storage, remote backends and engines,
plus the small exception hierarchy raised for misconfiguration.
"""

# Local storage
ERROR_STORAGE_UNAVAILABLE = "Local storage unavailable"
ERROR_STORAGE_READ = "Failed to read local snapshot"
ERROR_STORAGE_WRITE = "Failed to write local snapshot"
ERROR_STORAGE_CORRUPTED = "Corrupted local snapshot"

# Remote backend
ERROR_REMOTE_UNREACHABLE = "Remote store unreachable"
ERROR_REMOTE_REJECTED = "Remote store rejected the request"
ERROR_REMOTE_NOT_FOUND = "Remote snapshot not found"
ERROR_REMOTE_MALFORMED = "Malformed remote snapshot"

# Configuration
ERROR_UNKNOWN_BACKEND = "Unknown remote backend"
ERROR_REDIS_NOT_CONFIGURED = "UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set"
ERROR_API_URL_NOT_CONFIGURED = "STOREFRONT_API_URL must be set for the http backend"


class StorefrontError(Exception):
    """Base class for errors raised by the SDK."""


class ConfigurationError(StorefrontError, ValueError):
    """Raised when settings cannot produce a working component."""
