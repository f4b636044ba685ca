"""Pydantic request models for the PixelMuse API.

FastAPI uses these models for request validation and OpenAPI documentation.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
BatchGenerateRequest
    Payload for ``POST /api/generate/batch``.
CredentialRequest
    Payload for ``PUT /api/credentials/{provider}``.
SaveImageRequest
    Payload for ``POST /api/images/save``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        model_id: Registry id of the model to use.
        prompt: Text prompt.
        size: Size value from the model's supported sizes.  ``None`` uses the
            model default.
        options: Model-specific extra options.  Names the model does not
            declare are ignored.
    """

    model_id: str = Field(..., description="Model id (e.g. 'gpt-image-1').")
    prompt: str = Field(..., description="Text prompt.")
    size: str | None = Field(default=None, description="Image size, e.g. '1024x1024'.")
    options: dict[str, str] = Field(
        default_factory=dict,
        description="Extra options declared by the model (background, quality, ...).",
    )


class BatchGenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate/batch`` endpoint.

    ``prompts`` may be one multi-line string or a list of lines.  A line may
    end with ``#$name`` to suggest a filename for that image.
    """

    model_id: str = Field(..., description="Model id used for every prompt.")
    prompts: str | list[str] = Field(..., description="Prompt lines (blank lines are ignored).")
    size: str | None = Field(default=None)
    options: dict[str, str] = Field(default_factory=dict)


class CredentialRequest(BaseModel):
    """Request body for storing a provider API key."""

    api_key: str = Field(..., description="Provider API key.")


class SaveImageRequest(BaseModel):
    """Request body for the ``POST /api/images/save`` endpoint.

    Attributes:
        image_ref: URL or ``data:`` URL from a generation result.
        is_inline: Whether ``image_ref`` is a ``data:`` URL.
        prompt: Prompt used for the default filename.
        model: Model id used for the default filename.
        suggested_filename: Name from a ``#$name`` directive, if any.
        filename: Explicit filename; overrides the suggestion.
    """

    image_ref: str
    is_inline: bool = False
    prompt: str = ""
    model: str = "image"
    suggested_filename: str | None = None
    filename: str | None = None
