"""Core functionality for multi-provider image generation.

This module provides the core components of PixelMuse:

- **Model descriptors**: Declarative description of each provider model
- **model_registry**: Catalog of every registered model, grouped by provider
- **Credential resolution**: Picking the right API key for a model
- **GenerationOrchestrator**: Single and batch generation with failure isolation
- **PixelmuseConfig**: Configuration management using Pydantic Settings

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with PIXELMUSE_ in .env files

2. **Provider Adapter Layer** (adapters/):
   - One adapter per provider translating requests to the provider's API
   - Each adapter module publishes a tuple of model descriptors

3. **Registry and Orchestration** (registry.py, credentials.py, orchestrator.py):
   - Registry built once from every provider's descriptors
   - Orchestrator validates input, resolves credentials, calls adapters and
     normalizes results

4. **Support Utilities**:
   - prompts.py: Batch prompt splitting and ``#$name`` filename directives
   - image_store.py: Saving URL or inline images to disk

Usage Example
-------------
    from pixelmuse.core import GenerationOrchestrator, model_registry

    orchestrator = GenerationOrchestrator(model_registry)
    result = await orchestrator.generate_one(
        "gpt-image-1",
        "a watercolor hummingbird",
        credentials={"OpenAI": "sk-..."},
    )
"""

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
