"""Error taxonomy for image generation.

Orchestrator-level errors all derive from :class:`GenerationError` so callers
can catch one type at the presentation boundary. Provider adapters raise
:class:`ProviderError` subclasses; the orchestrator wraps those in
:class:`AdapterError` without altering their ``kind``.

Hierarchy
---------
- GenerationError
    - InvalidInputError
    - ModelNotFoundError
    - MissingCredentialError
    - EmptyResultError
    - AdapterError
- ProviderError
    - ProviderAuthenticationError
    - ProviderRateLimitError
- RegistryConfigurationError
"""

from typing import Literal

ProviderErrorKind = Literal["authentication", "rate_limit", "generic"]


class GenerationError(Exception):
    """Base class for errors surfaced by the generation orchestrator."""

    pass


class InvalidInputError(GenerationError):
    """Caller supplied an empty prompt, an unsupported size or option value, or an empty batch."""

    pass


class ModelNotFoundError(GenerationError):
    """Requested model id is not in the registry."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class MissingCredentialError(GenerationError):
    """No usable credential is configured for the model's provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Missing API key for {provider}. Please add a {provider} API key in Settings."
        )
        self.provider = provider


class EmptyResultError(GenerationError):
    """Provider answered successfully but returned no image."""

    def __init__(self, model_id: str) -> None:
        super().__init__("No image was generated")
        self.model_id = model_id


class ProviderError(Exception):
    """Failure raised by a provider adapter.

    Attributes:
        provider: Provider name the failure came from
        kind: One of ``"authentication"``, ``"rate_limit"`` or ``"generic"``
        status_code: HTTP status code, when the failure came from a response
    """

    kind: ProviderErrorKind = "generic"

    def __init__(self, message: str, *, provider: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderAuthenticationError(ProviderError):
    """Credential was rejected by the provider (invalid or expired)."""

    kind: ProviderErrorKind = "authentication"


class ProviderRateLimitError(ProviderError):
    """Provider refused the call because of rate limits or exhausted quota."""

    kind: ProviderErrorKind = "rate_limit"


class AdapterError(GenerationError):
    """Wraps a provider adapter failure, preserving its kind.

    Attributes:
        cause: The original exception raised by the adapter
        kind: Failure subdivision copied from ``cause`` (``"generic"`` for
            exceptions that are not :class:`ProviderError`)
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause) or cause.__class__.__name__)
        self.cause = cause
        self.kind: ProviderErrorKind = getattr(cause, "kind", "generic")
        self.provider: str | None = getattr(cause, "provider", None)


class RegistryConfigurationError(ValueError):
    """Model registry was assembled from an invalid descriptor set."""

    pass
