"""User-facing wording for generation errors.

The orchestrator raises typed errors; this module decides what the user sees
and which HTTP status carries it. Authentication and rate-limit failures get
their own guidance so the user knows whether to fix the key or wait.
"""

from __future__ import annotations

from pixelmuse.core.errors import (
    AdapterError,
    EmptyResultError,
    GenerationError,
    InvalidInputError,
    MissingCredentialError,
    ModelNotFoundError,
)

INVALID_KEY_MESSAGE = "Invalid API key. Please check your API key."
RATE_LIMIT_MESSAGE = (
    "Rate limit exceeded or quota reached. Please try again later or upgrade your API plan."
)


def describe_error(error: GenerationError) -> tuple[int, str]:
    """Map an orchestrator error to ``(http_status, message)``.

    Args:
        error: Error raised by the orchestrator.

    Returns:
        Tuple of HTTP status code and user-facing message.
    """
    if isinstance(error, InvalidInputError):
        return 400, str(error)
    if isinstance(error, ModelNotFoundError):
        return 404, str(error)
    if isinstance(error, MissingCredentialError):
        return 400, str(error)
    if isinstance(error, EmptyResultError):
        return 502, str(error)
    if isinstance(error, AdapterError):
        if error.kind == "authentication":
            return 401, INVALID_KEY_MESSAGE
        if error.kind == "rate_limit":
            return 429, RATE_LIMIT_MESSAGE
        return 502, f"Error: {error}"
    return 500, f"Error: {error}"
