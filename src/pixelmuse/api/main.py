"""PixelMuse — FastAPI Application.

This module is the single entry point for the local web application.  It
defines the FastAPI ``app`` instance, all REST API routes, and the ``main()``
CLI function that launches the uvicorn server.

Architecture
------------
- **Models** come from the process-wide
  :data:`~pixelmuse.core.registry.model_registry`.
- **Credentials** are read from a
  :class:`~pixelmuse.core.credentials.CredentialStore` backed by the
  settings file and passed explicitly to every generation call.
- **Generation** is delegated to
  :class:`~pixelmuse.core.orchestrator.GenerationOrchestrator`.
- **Errors** raised by the orchestrator are translated into HTTP statuses and
  user-facing messages by :func:`~pixelmuse.api.messages.describe_error`.

Endpoints
---------
========  ================================  ================================
Method    Path                              Purpose
========  ================================  ================================
GET       ``/api/models``                   Models grouped by provider
GET       ``/api/credentials``              Which providers have a key
PUT       ``/api/credentials/{provider}``   Store a provider key
DELETE    ``/api/credentials/{provider}``   Remove a provider key
POST      ``/api/generate``                 Generate one image
POST      ``/api/generate/batch``           Generate one image per prompt
POST      ``/api/images/save``              Save an image to outputs_dir
========  ================================  ================================

Usage
-----
CLI (installed entry point)::

    pixelmuse

Direct invocation::

    python -m pixelmuse.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request

from pixelmuse import __version__
from pixelmuse.api.messages import describe_error
from pixelmuse.api.models import (
    BatchGenerateRequest,
    CredentialRequest,
    GenerateRequest,
    SaveImageRequest,
)
from pixelmuse.core.config import config
from pixelmuse.core.credentials import CredentialStore, check_credential_format
from pixelmuse.core.errors import GenerationError
from pixelmuse.core.image_store import save_image, suggest_filename
from pixelmuse.core.models import BatchOutcome, BatchSuccess
from pixelmuse.core.orchestrator import GenerationOrchestrator
from pixelmuse.core.registry import model_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the orchestrator and credential store for the app's lifetime.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.orchestrator = GenerationOrchestrator(
        model_registry, max_concurrency=config.batch_concurrency
    )
    app.state.credential_store = CredentialStore(config.settings_file)
    app.state.outputs_dir = config.outputs_dir
    logger.info(f"PixelMuse API ready ({len(model_registry)} models registered)")

    yield


app = FastAPI(
    title="PixelMuse",
    description="Image generation API across multiple text-to-image providers.",
    version=__version__,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def _credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def _credentials_for(request: Request) -> dict[str, str]:
    """Current provider -> key mapping for every provider in the registry."""
    registry = _orchestrator(request).registry
    return _credential_store(request).as_mapping(registry.providers())


def _known_provider(request: Request, provider: str) -> str:
    """Return the provider name if the registry knows it, else raise 404."""
    if provider not in _orchestrator(request).registry.providers():
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
    return provider


def _outcome_to_dict(outcome: BatchOutcome) -> dict:
    """Serialise a batch outcome for the JSON response."""
    if isinstance(outcome, BatchSuccess):
        return {
            "success": True,
            "prompt": outcome.original_prompt,
            "display_prompt": outcome.display_prompt,
            "suggested_filename": outcome.suggested_filename,
            **outcome.result.to_dict(),
        }

    message = outcome.error_message
    if isinstance(outcome.error, GenerationError):
        _, message = describe_error(outcome.error)
    return {
        "success": False,
        "prompt": outcome.original_prompt,
        "display_prompt": outcome.display_prompt,
        "error": message,
    }


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/models")
async def list_models(request: Request) -> dict:
    """Return every model grouped by provider, plus the default model id."""
    registry = _orchestrator(request).registry
    return {
        "version": __version__,
        "default_model": registry.default_model().id,
        "providers": {
            name: [model.to_dict() for model in models]
            for name, models in registry.providers().items()
        },
    }


@app.get("/api/credentials")
async def list_credentials(request: Request) -> dict:
    """Report which providers have a stored key.  Keys are never returned."""
    store = _credential_store(request)
    registry = _orchestrator(request).registry
    return {
        "providers": [
            {"name": name, "configured": store.has(name)} for name in registry.providers()
        ]
    }


@app.put("/api/credentials/{provider}")
async def store_credential(provider: str, req: CredentialRequest, request: Request) -> dict:
    """Validate a key's format and store it.

    Raises:
        HTTPException: 404 for an unknown provider, 400 for a malformed key,
            500 if the settings file cannot be written.
    """
    provider = _known_provider(request, provider)
    problem = check_credential_format(provider, req.api_key)
    if problem:
        raise HTTPException(status_code=400, detail=problem)

    if not _credential_store(request).set(provider, req.api_key):
        raise HTTPException(status_code=500, detail="Failed to save API key")
    return {"success": True, "provider": provider}


@app.delete("/api/credentials/{provider}")
async def delete_credential(provider: str, request: Request) -> dict:
    """Remove a provider's stored key."""
    provider = _known_provider(request, provider)
    if not _credential_store(request).delete(provider):
        raise HTTPException(status_code=404, detail=f"No API key stored for {provider}")
    return {"success": True, "provider": provider}


@app.post("/api/generate")
async def generate_image(req: GenerateRequest, request: Request) -> dict:
    """Generate a single image.

    Raises:
        HTTPException: Status and message chosen by :func:`describe_error`.
    """
    try:
        result = await _orchestrator(request).generate_one(
            req.model_id,
            req.prompt,
            req.size,
            req.options,
            credentials=_credentials_for(request),
        )
    except GenerationError as e:
        status, message = describe_error(e)
        raise HTTPException(status_code=status, detail=message) from e

    return {"success": True, **result.to_dict()}


@app.post("/api/generate/batch")
async def generate_batch(req: BatchGenerateRequest, request: Request) -> dict:
    """Generate one image per prompt line.

    Individual failures are reported per item; only an empty batch (or other
    input rejected before any work starts) fails the whole request.
    """
    progress = {"completed": 0}

    def record_progress(completed: int, total: int) -> None:
        progress["completed"] = completed
        logger.debug(f"Batch progress {completed}/{total}")

    try:
        outcomes = await _orchestrator(request).generate_batch(
            req.model_id,
            req.prompts,
            req.size,
            req.options,
            credentials=_credentials_for(request),
            on_progress=record_progress,
        )
    except GenerationError as e:
        status, message = describe_error(e)
        raise HTTPException(status_code=status, detail=message) from e

    return {
        "success": True,
        "total": len(outcomes),
        "completed": progress["completed"],
        "succeeded": sum(1 for outcome in outcomes if outcome.ok),
        "results": [_outcome_to_dict(outcome) for outcome in outcomes],
    }


@app.post("/api/images/save")
async def save_generated_image(req: SaveImageRequest, request: Request) -> dict:
    """Save an image into the outputs directory.

    The filename is reduced to its final path component so that saves cannot
    escape the outputs directory.

    Raises:
        HTTPException: 400 for an invalid filename, 502 if the save failed.
    """
    outputs_dir: Path = request.app.state.outputs_dir
    filename = req.filename or suggest_filename(req.prompt, req.model, req.suggested_filename)
    filename = Path(filename).name
    if not filename or filename in (".", ".."):
        raise HTTPException(status_code=400, detail="Invalid filename")

    outcome = await save_image(req.image_ref, req.is_inline, outputs_dir / filename)
    if not outcome.success:
        raise HTTPException(status_code=502, detail=outcome.message)
    return {"success": True, "path": str(outcome.path)}


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~pixelmuse.core.config.config`
    (``PIXELMUSE_SERVER_HOST``, ``PIXELMUSE_SERVER_PORT``,
    ``PIXELMUSE_LOG_LEVEL``).

    This function is registered as the ``pixelmuse`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "pixelmuse.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
