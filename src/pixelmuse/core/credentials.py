"""Provider credential resolution and storage.

Two concerns live here:

- :func:`resolve_credential` picks the API key a model needs out of a
  provider -> key mapping supplied by the caller. It only checks presence; the
  remote service decides whether the key is actually valid.
- :class:`CredentialStore` persists user-supplied keys in a small JSON
  settings file. It is handed explicitly to callers that need it and is
  never consulted by the orchestrator directly.

Secrets are never logged; log lines name providers only.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from .errors import MissingCredentialError
from .registry import ModelRegistry

logger = logging.getLogger(__name__)

# provider -> required key prefix
KEY_PREFIXES = {
    "OpenAI": "sk-",
}


def resolve_credential(
    registry: ModelRegistry, model_id: str, credentials: Mapping[str, str]
) -> str:
    """Return the credential for the provider that serves ``model_id``.

    Args:
        registry: Model registry to look the model up in
        model_id: Requested model id
        credentials: Mapping of provider name -> secret

    Returns:
        The credential, stripped of surrounding whitespace

    Raises:
        ModelNotFoundError: If the model is not registered
        MissingCredentialError: If the provider has no entry or a blank one
    """
    descriptor = registry.get(model_id)
    secret = credentials.get(descriptor.provider) or ""
    if not secret.strip():
        raise MissingCredentialError(descriptor.provider)
    return secret.strip()


def check_credential_format(provider: str, secret: str) -> str | None:
    """Check a key's syntax before it is stored.

    Returns:
        A user-facing error message, or None if the key looks acceptable
    """
    secret = secret.strip()
    if not secret:
        return "API key cannot be empty"

    prefix = KEY_PREFIXES.get(provider)
    if prefix and not secret.startswith(prefix):
        return f'{provider} API key should start with "{prefix}"'
    return None


def storage_key(provider: str) -> str:
    """Settings-file key for a provider (``"OpenAI"`` -> ``"openai-api-key"``)."""
    return f"{provider.lower()}-api-key"


class CredentialStore:
    """JSON-file backed key/value store for provider API keys.

    The whole file is read at construction and rewritten on every change.
    Values are stored under :func:`storage_key` names so other settings can
    share the file.

    Attributes:
        path: Location of the settings file
    """

    def __init__(self, path: Path, defaults: Mapping[str, str] | None = None) -> None:
        self.path = Path(path)
        self._defaults = dict(defaults or {})
        self._data = self._load()

    def _load(self) -> dict:
        if self.path.exists():
            try:
                with open(self.path, encoding="utf-8") as handle:
                    data = json.load(handle)
                if isinstance(data, dict):
                    return {**self._defaults, **data}
                logger.warning(f"Ignoring settings file with unexpected content: {self.path}")
            except (OSError, ValueError) as e:
                logger.error(f"Error loading settings file {self.path}: {e}")
        return dict(self._defaults)

    def _save(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, indent=2)
            return True
        except OSError as e:
            logger.error(f"Error saving settings file {self.path}: {e}")
            return False

    def get(self, provider: str) -> str:
        """Return the stored key for a provider, or an empty string."""
        value = self._data.get(storage_key(provider), "")
        return value if isinstance(value, str) else ""

    def set(self, provider: str, secret: str) -> bool:
        """Store a key for a provider. Returns False if the file could not be written."""
        self._data[storage_key(provider)] = secret.strip()
        saved = self._save()
        if saved:
            logger.info(f"Stored API key for {provider}")
        return saved

    def delete(self, provider: str) -> bool:
        """Remove a provider's key. Returns False if there was none or saving failed."""
        key = storage_key(provider)
        if key not in self._data:
            return False
        del self._data[key]
        saved = self._save()
        if saved:
            logger.info(f"Removed API key for {provider}")
        return saved

    def has(self, provider: str) -> bool:
        return bool(self.get(provider).strip())

    def as_mapping(self, providers: Iterable[str]) -> dict[str, str]:
        """Build a provider -> key mapping for every configured provider."""
        return {name: self.get(name) for name in providers if self.has(name)}
