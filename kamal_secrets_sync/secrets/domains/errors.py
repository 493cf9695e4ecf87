"""Exceptions raised while synchronising secrets."""


class SecretSyncError(Exception):
    """Base class for all kamal-secrets-sync errors."""
    pass


class ConfigError(SecretSyncError):
    """Configuration error exception."""
    pass


class ManifestMissing(SecretSyncError):
    """The deploy manifest could not be read."""
    pass


class ManifestMalformed(SecretSyncError):
    """The deploy manifest could not be parsed into a list of secret keys."""
    pass


class SourceMissing(SecretSyncError):
    """The local key=value source file does not exist."""
    pass


class RegistryError(SecretSyncError):
    """Base class for failures talking to the remote secret registry."""
    pass


class RegistryUnavailable(RegistryError):
    """Registry call failed (missing CLI, auth, network, unexpected output)."""
    pass


class RegistryTimeout(RegistryError):
    """Registry call exceeded its bounded wait."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"Registry call '{operation}' timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class ApplyFailed(SecretSyncError):
    """A single create/edit call failed; recorded in the report, never fatal."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason
