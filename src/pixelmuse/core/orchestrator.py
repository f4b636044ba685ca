"""Single and batch image generation across providers.

:class:`GenerationOrchestrator` runs every generation request through the
same pipeline:

1. Validate the prompt (non-empty after trimming)
2. Look up the model in the registry
3. Resolve the provider credential
4. Validate the size (falling back to the model default) and parse it
5. Validate extra options against the model's option schema
6. Call the model's provider adapter
7. Normalize the first returned image into a :class:`GenerationResult`

Batch generation fans this pipeline out, one unit of work per prompt line,
and runs all units concurrently on the event loop. Each unit's failure is
captured as a :class:`BatchFailure` so one bad prompt never affects the
others. Outcomes come back in input order regardless of completion order.

Retries
-------
The orchestrator never retries. Every failure is reported exactly once;
callers that want a retry call :meth:`GenerationOrchestrator.generate_one`
again for the failed item.

Concurrency
-----------
By default every unit of a batch is dispatched at once, so a batch of ``n``
prompts opens ``n`` simultaneous provider requests. Pass ``max_concurrency``
(or set ``PIXELMUSE_BATCH_CONCURRENCY``) to bound the number of in-flight
units.

Usage Example
-------------
    >>> orchestrator = GenerationOrchestrator(model_registry)
    >>> result = await orchestrator.generate_one(
    ...     "dall-e-3", "a lighthouse at dawn", credentials={"OpenAI": "sk-..."}
    ... )
    >>> outcomes = await orchestrator.generate_batch(
    ...     "stable-diffusion-xl",
    ...     "a red fox #$fox1\\na blue fox",
    ...     credentials={"Stability AI": "sk-..."},
    ...     on_progress=lambda done, total: print(f"{done}/{total}"),
    ... )
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from .credentials import resolve_credential
from .errors import (
    AdapterError,
    EmptyResultError,
    GenerationError,
    InvalidInputError,
    ProviderError,
)
from .models import (
    BatchFailure,
    BatchOutcome,
    BatchSuccess,
    GenerationResult,
    ImageSize,
    ModelDescriptor,
    PromptLine,
    ProviderRequest,
)
from .prompts import split_batch_prompts
from .registry import ModelRegistry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]


class GenerationOrchestrator:
    """Drives generation requests against a model registry.

    The orchestrator is stateless between calls: it keeps no request history
    and never mutates the registry or the credential mapping it is given.

    Attributes:
        registry: Registry used to look models up
        max_concurrency: Upper bound on in-flight batch units (None = unbounded)
    """

    def __init__(self, registry: ModelRegistry, max_concurrency: int | None = None) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.registry = registry
        self.max_concurrency = max_concurrency

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_size(model: ModelDescriptor, size: str | None) -> ImageSize:
        value = (size or "").strip() or model.default_size
        if not model.supports_size(value):
            supported = ", ".join(choice.value for choice in model.supported_sizes)
            raise InvalidInputError(
                f"Size '{value}' is not supported by {model.display_name}. "
                f"Supported sizes: {supported}"
            )
        return ImageSize.parse(value)

    @staticmethod
    def _resolve_options(
        model: ModelDescriptor, extra_options: Mapping[str, Any] | None
    ) -> dict[str, str]:
        options: dict[str, str] = {}
        for name, value in (extra_options or {}).items():
            allowed = model.allowed_values(name)
            if allowed is None:
                # Provider-specific UI state for another model; not an error.
                logger.debug(f"Ignoring option '{name}' not declared by {model.id}")
                continue
            if value not in allowed:
                raise InvalidInputError(
                    f"Invalid value '{value}' for option '{name}'. "
                    f"Allowed values: {', '.join(allowed)}"
                )
            options[name] = value
        return options

    # ------------------------------------------------------------------
    # Single generation
    # ------------------------------------------------------------------

    async def generate_one(
        self,
        model_id: str,
        prompt: str,
        size: str | None = None,
        extra_options: Mapping[str, Any] | None = None,
        *,
        credentials: Mapping[str, str],
    ) -> GenerationResult:
        """Generate one image.

        Args:
            model_id: Registry id of the model to use
            prompt: Text prompt
            size: Size string from the model's supported sizes (None = model default)
            extra_options: Model-specific options; undeclared names are ignored
            credentials: Mapping of provider name -> API key

        Returns:
            The first image the provider produced, normalized

        Raises:
            InvalidInputError: Empty prompt, unsupported size or option value
            ModelNotFoundError: Unknown model id
            MissingCredentialError: No key configured for the model's provider
            AdapterError: Provider call failed (``kind`` tells auth/rate_limit/generic)
            EmptyResultError: Provider succeeded but returned no image
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidInputError("Please enter a prompt")

        model = self.registry.get(model_id)
        credential = resolve_credential(self.registry, model_id, credentials)
        image_size = self._resolve_size(model, size)
        options = self._resolve_options(model, extra_options)

        request = ProviderRequest(
            credential=credential,
            prompt=prompt,
            size=image_size,
            count=1,
            options=options,
        )

        try:
            response = await model.generate(request)
        except ProviderError as e:
            logger.warning(f"{model.id} generation failed ({e.kind}): {e}")
            raise AdapterError(e) from e
        except Exception as e:
            logger.exception(f"Unexpected error from {model.provider} adapter for {model.id}")
            raise AdapterError(e) from e

        if not response.images:
            raise EmptyResultError(model.id)

        image = response.images[0]
        return GenerationResult(
            image_ref=image.ref,
            is_inline=image.is_inline,
            width=image.width,
            height=image.height,
            model=response.model,
            provider=response.provider,
            prompt=prompt,
            size=image_size.value,
            revised_prompt=image.revised_prompt,
        )

    # ------------------------------------------------------------------
    # Batch generation
    # ------------------------------------------------------------------

    async def generate_batch(
        self,
        model_id: str,
        prompts: str | Iterable[str],
        size: str | None = None,
        extra_options: Mapping[str, Any] | None = None,
        *,
        credentials: Mapping[str, str],
        on_progress: ProgressCallback | None = None,
    ) -> list[BatchOutcome]:
        """Generate one image per prompt line, concurrently.

        Args:
            model_id: Registry id of the model to use for every line
            prompts: Multi-line string or iterable of lines; blank lines are dropped
            size: Size applied to every line (None = model default)
            extra_options: Options applied to every line
            credentials: Mapping of provider name -> API key
            on_progress: Called as ``on_progress(completed, total)`` after each
                unit settles; may be a plain function or a coroutine function

        Returns:
            One outcome per non-blank prompt line, in input order

        Raises:
            InvalidInputError: If no non-blank prompt lines remain (no work is started)
        """
        lines = split_batch_prompts(prompts)
        if not lines:
            raise InvalidInputError("Please enter at least one valid prompt")

        total = len(lines)
        completed = 0
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        logger.info(f"Starting batch of {total} prompts on {model_id}")

        async def run_unit(index: int, line: PromptLine) -> BatchOutcome:
            nonlocal completed
            unit = self._run_unit(index, total, line, model_id, size, extra_options, credentials)
            if semaphore is not None:
                async with semaphore:
                    outcome = await unit
            else:
                outcome = await unit

            completed += 1
            if on_progress is not None:
                try:
                    maybe_awaitable = on_progress(completed, total)
                    if inspect.isawaitable(maybe_awaitable):
                        await maybe_awaitable
                except Exception:
                    logger.exception("Progress callback failed")
            return outcome

        outcomes = await asyncio.gather(*(run_unit(i, line) for i, line in enumerate(lines)))

        failures = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(f"Batch finished: {total - failures}/{total} succeeded")
        return list(outcomes)

    async def _run_unit(
        self,
        index: int,
        total: int,
        line: PromptLine,
        model_id: str,
        size: str | None,
        extra_options: Mapping[str, Any] | None,
        credentials: Mapping[str, str],
    ) -> BatchOutcome:
        """Run one unit of work, capturing any failure as a BatchFailure."""
        try:
            result = await self.generate_one(
                model_id, line.prompt, size, extra_options, credentials=credentials
            )
        except Exception as e:
            if isinstance(e, GenerationError):
                logger.warning(f"Batch item {index + 1}/{total} failed: {e}")
            else:
                logger.exception(f"Batch item {index + 1}/{total} failed unexpectedly")
            return BatchFailure(
                original_prompt=line.original,
                display_prompt=line.prompt,
                error_message=str(e) or "Failed to generate image",
                error=e,
            )

        logger.debug(f"Batch item {index + 1}/{total} generated")
        return BatchSuccess(
            result=result,
            original_prompt=line.original,
            display_prompt=line.prompt,
            suggested_filename=line.suggested_filename,
        )
