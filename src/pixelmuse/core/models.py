"""Data models for model descriptors, requests, and generation results."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

AUTO_SIZE = "auto"


@dataclass(frozen=True)
class OptionChoice:
    """One legal value of a size or extra option, with its display label."""

    value: str
    label: str


@dataclass(frozen=True)
class ImageSize:
    """Structured form of the ``"WxH"`` / ``"auto"`` size string.

    ``width`` and ``height`` are ``None`` for ``auto``; the provider picks the
    dimensions in that case.
    """

    width: int | None = None
    height: int | None = None

    @classmethod
    def parse(cls, value: str) -> "ImageSize":
        """Parse a size string.

        Args:
            value: ``"auto"`` or ``"<width>x<height>"``

        Returns:
            Parsed ImageSize

        Raises:
            ValueError: If the string is not a valid size
        """
        text = value.strip().lower()
        if text == AUTO_SIZE:
            return cls()

        parts = text.split("x")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid size '{value}', expected WxH or auto")

        width, height = int(parts[0]), int(parts[1])
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid size '{value}', dimensions must be positive")
        return cls(width=width, height=height)

    @property
    def is_auto(self) -> bool:
        return self.width is None or self.height is None

    @property
    def value(self) -> str:
        """Wire representation (``"1024x1024"`` or ``"auto"``)."""
        if self.is_auto:
            return AUTO_SIZE
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class ProviderRequest:
    """Normalized request handed to a provider adapter.

    The orchestrator builds this after validating prompt, size and options.
    ``count`` is always 1: batches fan out into one request per prompt.
    """

    credential: str = field(repr=False)
    prompt: str
    size: ImageSize
    count: int = 1
    options: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderImage:
    """One image returned by a provider adapter.

    Attributes:
        ref: Remote URL, or a ``data:`` URL when ``is_inline`` is True
        is_inline: Whether ``ref`` carries the image bytes inline
        width: Image width in pixels
        height: Image height in pixels
        revised_prompt: Prompt as rewritten by the provider, if any
        seed: Seed reported by the provider, if any
    """

    ref: str
    is_inline: bool
    width: int
    height: int
    revised_prompt: str | None = None
    seed: int | None = None


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized response envelope returned by every adapter."""

    images: list[ProviderImage]
    model: str
    provider: str
    usage: Mapping[str, Any] | None = None


GenerateFn = Callable[[ProviderRequest], Awaitable[ProviderResponse]]


@dataclass(frozen=True, eq=False)
class ModelDescriptor:
    """Static description of one generation backend plus its generate capability.

    Descriptors are built once at import time by the provider adapter modules
    and registered with :class:`~pixelmuse.core.registry.ModelRegistry`.

    Attributes
    ----------
    id : str
        Stable identifier used in requests (unique across the registry)
    display_name : str
        Human-readable model name
    description : str
        Short description for presentation
    provider : str
        Provider name, also the key into the credential mapping
    default_size : str
        Size used when the caller does not supply one
    supported_sizes : tuple[OptionChoice, ...]
        The only accepted values for the size option
    extra_options : Mapping[str, tuple[OptionChoice, ...]]
        Additional named options and their legal values
    generate : GenerateFn
        Coroutine function satisfying the provider adapter contract
    """

    id: str
    display_name: str
    description: str
    provider: str
    default_size: str
    supported_sizes: tuple[OptionChoice, ...]
    generate: GenerateFn = field(repr=False)
    extra_options: Mapping[str, tuple[OptionChoice, ...]] = field(default_factory=dict)

    def supports_size(self, value: str) -> bool:
        return any(choice.value == value for choice in self.supported_sizes)

    def allowed_values(self, option: str) -> list[str] | None:
        """Return the legal values for an extra option, or None if undeclared."""
        choices = self.extra_options.get(option)
        if choices is None:
            return None
        return [choice.value for choice in choices]

    def to_dict(self) -> dict[str, Any]:
        """Serializable metadata (everything except the generate capability)."""
        return {
            "id": self.id,
            "name": self.display_name,
            "description": self.description,
            "provider": self.provider,
            "default_size": self.default_size,
            "supported_sizes": [
                {"value": c.value, "label": c.label} for c in self.supported_sizes
            ],
            "extra_options": {
                name: [{"value": c.value, "label": c.label} for c in choices]
                for name, choices in self.extra_options.items()
            },
        }


@dataclass(frozen=True)
class GenerationResult:
    """Normalized outcome of one successful unit of work."""

    image_ref: str = field(repr=False)
    is_inline: bool
    width: int
    height: int
    model: str
    provider: str
    prompt: str
    size: str
    revised_prompt: str | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "image_ref": self.image_ref,
            "is_inline": self.is_inline,
            "width": self.width,
            "height": self.height,
            "model": self.model,
            "provider": self.provider,
            "prompt": self.prompt,
            "size": self.size,
            "revised_prompt": self.revised_prompt,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class PromptLine:
    """A batch prompt line with its optional filename directive split off.

    Attributes:
        original: The trimmed input line, directive included
        prompt: Text sent to the provider and shown to the user
        suggested_filename: Name from a trailing ``#$name`` directive, if any
    """

    original: str
    prompt: str
    suggested_filename: str | None = None


@dataclass(frozen=True)
class BatchSuccess:
    """Batch item that produced an image."""

    result: GenerationResult
    original_prompt: str
    display_prompt: str
    suggested_filename: str | None = None

    ok = True


@dataclass(frozen=True)
class BatchFailure:
    """Batch item that failed; the failure never affects sibling items."""

    original_prompt: str
    display_prompt: str
    error_message: str
    error: Exception | None = field(default=None, repr=False, compare=False)

    ok = False


BatchOutcome = BatchSuccess | BatchFailure
