"""OpenAI image generation adapter.

Supports three models through the ``/images/generations`` endpoint:

- **gpt-image-1**: always answers with base64 payloads (inline images);
  accepts background, moderation, output format and quality options.
- **dall-e-3**: answers with hosted URLs and a provider-rewritten prompt.
- **dall-e-2**: answers with hosted URLs.
"""

import logging
from typing import Any

from ..config import config
from ..models import (
    ModelDescriptor,
    OptionChoice,
    ProviderImage,
    ProviderRequest,
    ProviderResponse,
)
from .base import ProviderAdapter, data_url, resolve_dimensions

logger = logging.getLogger(__name__)

PROVIDER = "OpenAI"

# output_compression is only honoured for lossy formats
COMPRESSIBLE_FORMATS = ("jpeg", "webp")


class OpenAIAdapter(ProviderAdapter):
    """Adapter for the OpenAI Images API."""

    provider = PROVIDER

    @property
    def endpoint(self) -> str:
        return f"{self.config.openai_base_url.rstrip('/')}/images/generations"

    def build_payload(self, model_id: str, request: ProviderRequest) -> dict[str, Any]:
        """Translate a normalized request into an Images API payload.

        Option defaults mirror the first choice declared in each model's
        option schema.
        """
        options = request.options
        payload: dict[str, Any] = {
            "model": model_id,
            "prompt": request.prompt,
            "n": request.count,
            "size": request.size.value,
        }

        if model_id == "gpt-image-1":
            output_format = options.get("output_format", "png")
            payload.update(
                {
                    "background": options.get("background", "auto"),
                    "moderation": options.get("moderation", "auto"),
                    "output_format": output_format,
                    "quality": options.get("quality", "auto"),
                }
            )
            if output_format in COMPRESSIBLE_FORMATS:
                payload["output_compression"] = self.config.gpt_image_output_compression
        elif model_id == "dall-e-3":
            payload.update(
                {
                    "quality": options.get("quality", "standard"),
                    "style": options.get("style", "vivid"),
                    "response_format": "url",
                }
            )
        else:
            payload["response_format"] = "url"

        return payload

    async def generate(self, model_id: str, request: ProviderRequest) -> ProviderResponse:
        payload = self.build_payload(model_id, request)
        logger.info(f"Requesting {request.count} image(s) from {model_id} at {request.size.value}")

        body = await self._post_json(
            self.endpoint,
            headers={"Authorization": f"Bearer {request.credential}"},
            payload=payload,
        )

        width, height = resolve_dimensions(request.size)
        image_format = payload.get("output_format", "png")
        images = []
        for item in body.get("data") or []:
            if item.get("b64_json"):
                ref, is_inline = data_url(item["b64_json"], image_format), True
            elif item.get("url"):
                ref, is_inline = item["url"], False
            else:
                logger.warning(f"{model_id} returned an image entry without data")
                continue
            images.append(
                ProviderImage(
                    ref=ref,
                    is_inline=is_inline,
                    width=width,
                    height=height,
                    revised_prompt=item.get("revised_prompt"),
                )
            )

        return ProviderResponse(
            images=images,
            model=model_id,
            provider=self.provider,
            usage=body.get("usage"),
        )


_adapter = OpenAIAdapter(config)

MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="gpt-image-1",
        display_name="GPT Image 1",
        description="OpenAI's GPT-image-1 backend for photorealistic image generation",
        provider=PROVIDER,
        default_size="1024x1024",
        supported_sizes=(
            OptionChoice("1024x1024", "1024×1024 (Square)"),
            OptionChoice("1024x1536", "1024×1536 (Tall)"),
            OptionChoice("1536x1024", "1536×1024 (Wide)"),
            OptionChoice("auto", "Auto"),
        ),
        extra_options={
            "background": (
                OptionChoice("auto", "Auto (Default)"),
                OptionChoice("transparent", "Transparent"),
                OptionChoice("opaque", "Opaque"),
            ),
            "moderation": (
                OptionChoice("auto", "Auto (Default)"),
                OptionChoice("low", "Low (Less restrictive)"),
            ),
            "output_format": (
                OptionChoice("png", "PNG (Default)"),
                OptionChoice("jpeg", "JPEG"),
                OptionChoice("webp", "WebP"),
            ),
            "quality": (
                OptionChoice("auto", "Auto (Default)"),
                OptionChoice("high", "High"),
                OptionChoice("medium", "Medium"),
                OptionChoice("low", "Low"),
            ),
        },
        generate=_adapter.bind("gpt-image-1"),
    ),
    ModelDescriptor(
        id="dall-e-3",
        display_name="DALL-E 3",
        description="OpenAI's DALL-E 3 model for creative image generation",
        provider=PROVIDER,
        default_size="1024x1024",
        supported_sizes=(
            OptionChoice("1024x1024", "1024×1024 (Square)"),
            OptionChoice("1024x1792", "1024×1792 (Tall)"),
            OptionChoice("1792x1024", "1792×1024 (Wide)"),
        ),
        extra_options={
            "quality": (
                OptionChoice("standard", "Standard (Default)"),
                OptionChoice("hd", "HD"),
            ),
            "style": (
                OptionChoice("vivid", "Vivid (Default)"),
                OptionChoice("natural", "Natural"),
            ),
        },
        generate=_adapter.bind("dall-e-3"),
    ),
    ModelDescriptor(
        id="dall-e-2",
        display_name="DALL-E 2",
        description="OpenAI's DALL-E 2 model for image generation",
        provider=PROVIDER,
        default_size="1024x1024",
        supported_sizes=(
            OptionChoice("256x256", "256×256"),
            OptionChoice("512x512", "512×512"),
            OptionChoice("1024x1024", "1024×1024 (Square)"),
        ),
        generate=_adapter.bind("dall-e-2"),
    ),
)
