"""Registry of available image generation models.

The registry aggregates the model descriptors published by each provider
adapter module into one addressable catalog. It is assembled once at import
time and is read-only afterwards, so it can be shared across concurrent
generation tasks without locking.

Registry Construction
---------------------
The catalog is built from the concatenation of each provider's descriptor
tuple. Two checks run at build time:

- every descriptor ``id`` must be unique across all providers
- the registry-wide default model id must be present

Either failure raises :class:`RegistryConfigurationError`; nothing is silently
shadowed.

Usage Example
-------------
    >>> from pixelmuse.core.registry import model_registry
    >>> model_registry.list_available()
    ['gpt-image-1', 'dall-e-3', 'dall-e-2', 'stable-diffusion-xl', 'stable-diffusion-3']
    >>> model_registry.get("dall-e-3").provider
    'OpenAI'

Adding a Provider
-----------------
Write an adapter module exposing a ``MODELS`` tuple of descriptors and add it
to the ``ModelRegistry(...)`` call at the bottom of this module. The
orchestrator needs no changes.
"""

import logging
from collections.abc import Iterable

from .adapters import openai, stability
from .config import config
from .errors import ModelNotFoundError, RegistryConfigurationError
from .models import ModelDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "gpt-image-1"


class ModelRegistry:
    """Read-only catalog of model descriptors keyed by id.

    Usage
    -----
    Building a registry from provider descriptor sets:

        >>> registry = ModelRegistry(openai.MODELS, stability.MODELS)

    Looking up a model:

        >>> descriptor = registry.get("stable-diffusion-xl")

    Grouping for presentation:

        >>> for provider, models in registry.providers().items():
        ...     print(provider, [m.id for m in models])

    Notes
    -----
    - There is no register/unregister API; the catalog is fixed at build time
    - Declaration order is preserved for both ``all_models`` and ``providers``
    """

    def __init__(
        self,
        *descriptor_sets: Iterable[ModelDescriptor],
        default_model_id: str = DEFAULT_MODEL_ID,
    ) -> None:
        """Build the registry.

        Args:
            *descriptor_sets: One iterable of descriptors per provider
            default_model_id: Id returned by :meth:`default_model`

        Raises
        ------
        RegistryConfigurationError
            If two descriptors share an id or the default id is not registered
        """
        self._models: dict[str, ModelDescriptor] = {}
        self._providers: dict[str, list[ModelDescriptor]] = {}

        for descriptors in descriptor_sets:
            for descriptor in descriptors:
                if descriptor.id in self._models:
                    existing = self._models[descriptor.id]
                    raise RegistryConfigurationError(
                        f"Duplicate model id '{descriptor.id}' "
                        f"(registered by {existing.provider} and {descriptor.provider})"
                    )
                self._models[descriptor.id] = descriptor
                self._providers.setdefault(descriptor.provider, []).append(descriptor)

        if default_model_id not in self._models:
            available = ", ".join(self._models) or "(none)"
            raise RegistryConfigurationError(
                f"Default model '{default_model_id}' is not registered. "
                f"Available models: {available}"
            )
        self._default_model_id = default_model_id

        logger.info(
            f"Model registry built with {len(self._models)} models "
            f"from {len(self._providers)} providers"
        )

    def all_models(self) -> dict[str, ModelDescriptor]:
        """Return every registered model keyed by id."""
        return dict(self._models)

    def providers(self) -> dict[str, list[ModelDescriptor]]:
        """Return models grouped by provider name, in declaration order."""
        return {name: list(models) for name, models in self._providers.items()}

    def get(self, model_id: str) -> ModelDescriptor:
        """Look up a model by id.

        Args:
            model_id: Identifier of the model

        Returns
        -------
        ModelDescriptor
            The registered descriptor

        Raises
        ------
        ModelNotFoundError
            If no model with that id is registered
        """
        try:
            return self._models[model_id]
        except KeyError:
            raise ModelNotFoundError(model_id) from None

    def default_model(self) -> ModelDescriptor:
        """Return the registry-wide default model."""
        return self._models[self._default_model_id]

    @property
    def default_model_id(self) -> str:
        return self._default_model_id

    def list_available(self) -> list[str]:
        """List all registered model ids."""
        return list(self._models.keys())

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)


# Global model registry instance
model_registry = ModelRegistry(
    openai.MODELS,
    stability.MODELS,
    default_model_id=config.default_model,
)
