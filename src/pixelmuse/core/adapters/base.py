"""Base class and shared helpers for provider adapters.

Each image generation provider (OpenAI, Stability AI, ...) has one adapter
that translates a normalized :class:`~pixelmuse.core.models.ProviderRequest`
into the provider's wire format and turns the raw response back into a
:class:`~pixelmuse.core.models.ProviderResponse`.

Provider Adapter Contract
-------------------------
Given a normalized request (credential, prompt, parsed size, ``count=1`` and
validated extra options), an adapter either:

- returns a ProviderResponse with image entries tagged as URL or inline, plus
  ``model`` / ``provider`` echo fields and an optional revised prompt, or
- raises a :class:`~pixelmuse.core.errors.ProviderError`, distinguishing
  authentication failures, rate/quota failures and generic failures.

Everything provider-specific (endpoint selection, size translation, format
and quality passthrough) stays inside the adapter.

Adding a Provider
-----------------
    >>> class MyProviderAdapter(ProviderAdapter):
    ...     provider = "My Provider"
    ...
    ...     async def generate(self, model_id, request):
    ...         body = await self._post_json(url, headers=..., payload=...)
    ...         return ProviderResponse(images=[...], model=model_id, provider=self.provider)
    >>>
    >>> _adapter = MyProviderAdapter(config)
    >>> MODELS = (ModelDescriptor(id="my-model", ..., generate=_adapter.bind("my-model")),)

Then add ``MODELS`` to the registry in :mod:`pixelmuse.core.registry`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..config import PixelmuseConfig
from ..errors import ProviderAuthenticationError, ProviderError, ProviderRateLimitError
from ..models import GenerateFn, ImageSize, ProviderRequest, ProviderResponse

logger = logging.getLogger(__name__)

# Phrases in an error body that indicate a rate or quota problem even when the
# provider does not answer with HTTP 429.
RATE_LIMIT_MARKERS = ("rate limit", "quota", "capacity")

MAX_ERROR_DETAIL = 240

# Dimensions reported for images generated with size "auto"
AUTO_SIZE_FALLBACK = (1024, 1024)


def data_url(b64_data: str, image_format: str = "png") -> str:
    """Build a ``data:`` URL for an inline base64 image payload."""
    return f"data:image/{image_format};base64,{b64_data}"


def resolve_dimensions(size: ImageSize) -> tuple[int, int]:
    """Return concrete (width, height) for a size, substituting the auto fallback."""
    if size.is_auto:
        return AUTO_SIZE_FALLBACK
    return size.width, size.height


def _error_detail(response: httpx.Response) -> str:
    """Extract a short human-readable message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    detail = ""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            detail = str(error.get("message") or error.get("code") or "")
        elif isinstance(error, str):
            detail = error
        if not detail:
            detail = str(body.get("message") or body.get("name") or "")
    if not detail:
        detail = response.text.strip() or response.reason_phrase

    if len(detail) > MAX_ERROR_DETAIL:
        detail = detail[:MAX_ERROR_DETAIL] + "..."
    return detail


def classify_http_error(provider: str, response: httpx.Response) -> ProviderError:
    """Map a non-2xx provider response onto the provider error hierarchy.

    - 401 / 403 -> :class:`ProviderAuthenticationError`
    - 429, or a body mentioning rate limit / quota / capacity ->
      :class:`ProviderRateLimitError`
    - anything else -> generic :class:`ProviderError`

    Args:
        provider: Provider name used in the message
        response: The failed HTTP response

    Returns:
        The exception to raise (not raised here)
    """
    status = response.status_code
    detail = _error_detail(response)
    message = f"{provider} API error ({status}): {detail}"

    if status in (401, 403):
        return ProviderAuthenticationError(message, provider=provider, status_code=status)
    if status == 429 or any(marker in detail.lower() for marker in RATE_LIMIT_MARKERS):
        return ProviderRateLimitError(message, provider=provider, status_code=status)
    return ProviderError(message, provider=provider, status_code=status)


class ProviderAdapter(ABC):
    """Abstract base class for provider adapters.

    Attributes
    ----------
    provider : str
        Provider name; must match the ``provider`` field of the adapter's
        descriptors and the key users store their credential under
    config : PixelmuseConfig
        Configuration (endpoints, timeouts, provider tuning)

    Notes
    -----
    - Adapters hold no per-request state and are safe to share between
      concurrent generation tasks
    - When no client is injected, a short-lived ``httpx.AsyncClient`` is opened
      per request
    """

    provider: str = "Base Provider"

    def __init__(self, config: PixelmuseConfig, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the adapter.

        Args:
            config: Configuration object
            client: Optional shared HTTP client (used by tests and long-lived servers)
        """
        self.config = config
        self._client = client

    @abstractmethod
    async def generate(self, model_id: str, request: ProviderRequest) -> ProviderResponse:
        """Generate images for one normalized request.

        Args:
            model_id: Registry id of the model being invoked
            request: Normalized request

        Returns
        -------
        ProviderResponse
            Normalized images plus model/provider echo fields

        Raises
        ------
        ProviderError
            On authentication, rate/quota, or generic failure
        """
        pass

    def bind(self, model_id: str) -> GenerateFn:
        """Return a ``generate(request)`` capability for one model id."""

        async def generate(request: ProviderRequest) -> ProviderResponse:
            return await self.generate(model_id, request)

        generate.__name__ = f"generate_{model_id.replace('-', '_')}"
        return generate

    def use_client(self, client: httpx.AsyncClient | None) -> None:
        """Replace the shared HTTP client (None restores per-request clients)."""
        self._client = client

    async def _post_json(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON body.

        Raises
        ------
        ProviderError
            For transport failures, non-2xx statuses, or non-JSON bodies
        """
        try:
            if self._client is not None:
                response = await self._client.post(url, headers=headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                    response = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"{self.provider} request timed out", provider=self.provider
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.provider} request failed: {e}", provider=self.provider
            ) from e

        if not response.is_success:
            error = classify_http_error(self.provider, response)
            logger.warning(f"{self.provider} returned HTTP {response.status_code} ({error.kind})")
            raise error

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.provider} returned an invalid JSON response", provider=self.provider
            ) from e

        if not isinstance(body, dict):
            raise ProviderError(
                f"{self.provider} returned an unexpected response shape", provider=self.provider
            )
        return body
