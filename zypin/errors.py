"""Controller exception hierarchy."""


class ZypinError(Exception):
    """Base error type for registry, supervisor and status service failures."""


class ProviderLoadError(ZypinError):
    """Provider entry point is missing or could not be imported."""


class ProviderValidationError(ZypinError):
    """Loaded provider interface does not satisfy the provider contract."""


class TemplateError(ZypinError):
    """Template directory is missing a required file."""


class SpawnError(ZypinError):
    """Provider start operation failed or returned no usable process id."""


class StatePersistenceError(ZypinError):
    """Supervisor state file could not be written."""


class StatusServerError(ZypinError):
    """Status service could not bind or start listening."""

    def __init__(self, message: str, *, port: int | None = None):
        super().__init__(message)
        self.port = port
