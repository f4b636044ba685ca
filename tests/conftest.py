"""Shared pytest fixtures for PixelMuse tests."""

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from pixelmuse.core.config import PixelmuseConfig
from pixelmuse.core.models import (
    ModelDescriptor,
    OptionChoice,
    ProviderImage,
    ProviderRequest,
    ProviderResponse,
)
from pixelmuse.core.orchestrator import GenerationOrchestrator
from pixelmuse.core.registry import ModelRegistry


class FakeGenerate:
    """Stand-in for a provider adapter's generate capability.

    Records every request it receives and can be told, per prompt, to sleep
    before answering, to raise, or to answer with no images.

    Attributes
    ----------
    calls : list[ProviderRequest]
        Requests in the order they were received
    completion_order : list[str]
        Prompts in the order their calls finished
    """

    def __init__(self, model: str = "fake-model", provider: str = "Fake") -> None:
        self.model = model
        self.provider = provider
        self.calls: list[ProviderRequest] = []
        self.completion_order: list[str] = []
        self.delays: dict[str, float] = {}
        self.failures: dict[str, Exception] = {}
        self.empty_prompts: set[str] = set()
        self.inline = False
        self.revised_prompt: str | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: ProviderRequest) -> ProviderResponse:
        self.calls.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(request.prompt, 0)
            if delay:
                await asyncio.sleep(delay)
            else:
                await asyncio.sleep(0)

            if request.prompt in self.failures:
                raise self.failures[request.prompt]

            images = []
            if request.prompt not in self.empty_prompts:
                width = request.size.width or 1024
                height = request.size.height or 1024
                slug = request.prompt.replace(" ", "-")
                if self.inline:
                    ref = "data:image/png;base64,iVBORw0KGgo="
                else:
                    ref = f"https://images.example.com/{slug}.png"
                images.append(
                    ProviderImage(
                        ref=ref,
                        is_inline=self.inline,
                        width=width,
                        height=height,
                        revised_prompt=self.revised_prompt,
                    )
                )
            return ProviderResponse(images=images, model=self.model, provider=self.provider)
        finally:
            self.in_flight -= 1
            self.completion_order.append(request.prompt)


def make_descriptor(
    model_id: str,
    provider: str,
    generate: FakeGenerate,
    sizes: tuple[str, ...] = ("512x512", "1024x1024", "auto"),
    default_size: str = "1024x1024",
    extra_options: dict[str, tuple[OptionChoice, ...]] | None = None,
) -> ModelDescriptor:
    """Build a descriptor backed by a FakeGenerate."""
    return ModelDescriptor(
        id=model_id,
        display_name=model_id.title(),
        description=f"Test model {model_id}",
        provider=provider,
        default_size=default_size,
        supported_sizes=tuple(OptionChoice(size, size) for size in sizes),
        extra_options=extra_options or {},
        generate=generate,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PixelmuseConfig:
    """Create a test configuration with temporary paths.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PixelmuseConfig instance for testing
    """
    return PixelmuseConfig(
        _env_file=None,
        settings_file=temp_dir / "settings.json",
        outputs_dir=temp_dir / "outputs",
        openai_base_url="https://openai.test/v1",
        stability_base_url="https://stability.test/v1",
        request_timeout=5,
    )


@pytest.fixture
def fake_generate() -> FakeGenerate:
    """Generate capability for the ``fake-model`` descriptor."""
    return FakeGenerate()


@pytest.fixture
def other_generate() -> FakeGenerate:
    """Generate capability for the ``other-model`` descriptor."""
    return FakeGenerate(model="other-model", provider="Other")


@pytest.fixture
def fake_registry(fake_generate: FakeGenerate, other_generate: FakeGenerate) -> ModelRegistry:
    """Registry with two providers, one model each.

    ``fake-model`` declares a ``style`` option with values ``plain`` and
    ``fancy``; ``other-model`` declares no options.
    """
    fake = make_descriptor(
        "fake-model",
        "Fake",
        fake_generate,
        extra_options={
            "style": (OptionChoice("plain", "Plain"), OptionChoice("fancy", "Fancy")),
        },
    )
    other = make_descriptor(
        "other-model", "Other", other_generate, sizes=("256x256",), default_size="256x256"
    )
    return ModelRegistry([fake], [other], default_model_id="fake-model")


@pytest.fixture
def orchestrator(fake_registry: ModelRegistry) -> GenerationOrchestrator:
    """Unbounded orchestrator over the fake registry."""
    return GenerationOrchestrator(fake_registry)


@pytest.fixture
def credentials() -> dict[str, str]:
    """Credential mapping with keys for both fake providers."""
    return {"Fake": "fake-key", "Other": "other-key"}


@pytest.fixture
def descriptor_factory():
    """Return ``make_descriptor`` for tests that assemble their own registry."""
    return make_descriptor
