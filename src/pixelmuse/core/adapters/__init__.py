"""Provider adapters for PixelMuse.

Each adapter module exposes an adapter class and a ``MODELS`` tuple of
model descriptors bound to a module-level adapter instance.
"""

from . import openai, stability
from .base import ProviderAdapter
from .openai import OpenAIAdapter
from .stability import StabilityAdapter

__all__ = [
    "ProviderAdapter",
    "OpenAIAdapter",
    "StabilityAdapter",
    "openai",
    "stability",
]
