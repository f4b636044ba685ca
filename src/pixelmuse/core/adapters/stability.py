"""Stability AI image generation adapter.

Both engines use the v1 ``text-to-image`` REST endpoint and answer with
base64 PNG artifacts, so every image is inline.
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

PROVIDER = "Stability AI"

# model id -> (engine id, default steps)
ENGINES: dict[str, tuple[str, int]] = {
    "stable-diffusion-xl": ("stable-diffusion-xl-1024-v1-0", 30),
    "stable-diffusion-3": ("stable-diffusion-3", 40),
}


class StabilityAdapter(ProviderAdapter):
    """Adapter for the Stability AI v1 generation API."""

    provider = PROVIDER

    def endpoint(self, engine_id: str) -> str:
        return f"{self.config.stability_base_url.rstrip('/')}/generation/{engine_id}/text-to-image"

    def build_payload(self, model_id: str, request: ProviderRequest) -> dict[str, Any]:
        _, default_steps = ENGINES[model_id]
        width, height = resolve_dimensions(request.size)
        payload: dict[str, Any] = {
            "text_prompts": [{"text": request.prompt}],
            "cfg_scale": self.config.stability_cfg_scale,
            "width": width,
            "height": height,
            "samples": request.count,
            "steps": self.config.stability_steps or default_steps,
        }
        if model_id == "stable-diffusion-3":
            payload["style_preset"] = request.options.get("style_preset", "photographic")
        return payload

    async def generate(self, model_id: str, request: ProviderRequest) -> ProviderResponse:
        engine_id, _ = ENGINES[model_id]
        payload = self.build_payload(model_id, request)
        logger.info(f"Requesting {request.count} image(s) from {engine_id}")

        body = await self._post_json(
            self.endpoint(engine_id),
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {request.credential}",
            },
            payload=payload,
        )

        images = []
        for artifact in body.get("artifacts") or []:
            if not artifact.get("base64"):
                logger.warning(
                    f"{engine_id} artifact without image data "
                    f"(finishReason={artifact.get('finishReason')})"
                )
                continue
            images.append(
                ProviderImage(
                    ref=data_url(artifact["base64"], "png"),
                    is_inline=True,
                    width=artifact.get("width") or payload["width"],
                    height=artifact.get("height") or payload["height"],
                    seed=artifact.get("seed"),
                )
            )

        return ProviderResponse(images=images, model=model_id, provider=self.provider)


_adapter = StabilityAdapter(config)

MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="stable-diffusion-xl",
        display_name="Stable Diffusion XL",
        description="Stability AI's SDXL 1.0 model for high-quality image generation",
        provider=PROVIDER,
        default_size="1024x1024",
        supported_sizes=(
            OptionChoice("512x512", "512×512"),
            OptionChoice("768x768", "768×768"),
            OptionChoice("1024x1024", "1024×1024"),
            OptionChoice("1152x896", "1152×896"),
        ),
        generate=_adapter.bind("stable-diffusion-xl"),
    ),
    ModelDescriptor(
        id="stable-diffusion-3",
        display_name="Stable Diffusion 3",
        description="Stability AI's SD3 model for state-of-the-art image generation",
        provider=PROVIDER,
        default_size="1024x1024",
        supported_sizes=(
            OptionChoice("1024x1024", "1024×1024"),
            OptionChoice("1536x1024", "1536×1024 (Wide)"),
            OptionChoice("1024x1536", "1024×1536 (Tall)"),
            OptionChoice("1344x768", "1344×768"),
        ),
        extra_options={
            "style_preset": (
                OptionChoice("photographic", "Photographic (Default)"),
                OptionChoice("digital-art", "Digital Art"),
                OptionChoice("cinematic", "Cinematic"),
                OptionChoice("anime", "Anime"),
                OptionChoice("fantasy-art", "Fantasy Art"),
                OptionChoice("3d-model", "3D Model"),
            ),
        },
        generate=_adapter.bind("stable-diffusion-3"),
    ),
)
