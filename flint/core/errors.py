"""Exception hierarchy for the Flint context core."""


class FlintError(Exception):
    """Base class for every error raised by Flint."""


class StoreUnavailableError(FlintError):
    """The durable memory store could not be loaded at initialization.

    Callers should carry on with an empty semantic memory.
    """


class SemanticUnavailableError(FlintError):
    """Semantic filtering is unavailable because training or embedding failed."""


class GenerationError(FlintError):
    """Base class for generative-backend failures."""


class BackendUnavailableError(GenerationError):
    """The text-generation capability is not present."""


class UserActivationRequiredError(GenerationError):
    """An explicit user action is required before the backend may be called."""


class GenerationTimeoutError(GenerationError):
    """The backend did not answer within the configured timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Generation timed out after {timeout:.1f}s")
        self.timeout = timeout
