"""PixelMuse - Multi-provider AI image generation."""

__version__ = "0.1.0"

from pixelmuse.core.config import PixelmuseConfig, config
from pixelmuse.core.orchestrator import GenerationOrchestrator
from pixelmuse.core.registry import ModelRegistry, model_registry

__all__ = [
    "GenerationOrchestrator",
    "ModelRegistry",
    "model_registry",
    "PixelmuseConfig",
    "config",
]
