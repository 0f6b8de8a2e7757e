"""Article illustrations via the OpenAI Images API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

import openai
from openai import OpenAI

from contentgen.errors import CANCELLED, ProviderError
from contentgen.providers.llm_content import sdk_error_to_provider_error
from contentgen.schemas.provider_schemas import ImageContext, ImageDescriptor, ImageSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePlan:
    id: str
    kind: str
    position: str
    prompt: str
    alt_suffix: str


_PLANS = (
    ImagePlan(
        "featured-image", "featured", "featured",
        'Professional, high-quality featured image for "{title}". Modern business setting, '
        "professional lighting, clean composition, 16:9 aspect ratio",
        "Professional guide and insights",
    ),
    ImagePlan(
        "concept-diagram", "diagram", "section-1",
        "Clean, modern infographic showing key concepts of {title}. Clear icons, flowing design, "
        "blue and grey palette, minimalist visual hierarchy",
        "Key concepts and framework diagram",
    ),
    ImagePlan(
        "process-visualization", "process", "section-2",
        "Step-by-step process visualization for {title}. Clean flowchart, numbered steps, "
        "modern business aesthetic",
        "Implementation process and workflow",
    ),
    ImagePlan(
        "benefits-illustration", "benefits", "section-3",
        "Professional illustration showing benefits and ROI of {title}. Charts and growth "
        "indicators, corporate color palette",
        "Benefits and business value illustration",
    ),
    ImagePlan(
        "technology-showcase", "technology", "section-4",
        "Modern technology showcase related to {title}. Sleek interface designs, automation "
        "elements, enterprise technology focus",
        "Technology and innovation showcase",
    ),
    ImagePlan(
        "case-study-visual", "case-study", "section-5",
        "Case study visual for {title}. Team collaboration, success metrics, corporate environment",
        "Real-world implementation and success stories",
    ),
)


def image_plans(count: int) -> tuple[ImagePlan, ...]:
    return _PLANS[: max(1, min(count, len(_PLANS)))]


def placeholder_url(plan: ImagePlan, alt_text: str) -> str:
    size = "1280x720" if plan.kind == "featured" else "1024x768"
    return f"https://via.placeholder.com/{size}/4A90E2/FFFFFF?text={quote(alt_text)}"


class OpenAIImageClient:
    """One image per plan. A failed image becomes a flagged placeholder.

    The plans run sequentially; a cancelled session stops before the next one.
    """

    def __init__(self, client: OpenAI, model: str = "dall-e-3", timeout: float = 300.0):
        self._client = client
        self._model = model
        self._timeout = timeout

    def _generate_one(self, plan: ImagePlan, prompt: str) -> str:
        response = self._client.images.generate(
            model=self._model,
            prompt=prompt,
            size="1792x1024" if plan.kind == "featured" else "1024x1024",
            quality="hd",
            n=1,
            timeout=self._timeout,
        )
        url = response.data[0].url if response.data else None
        if not url:
            raise ProviderError("no image URL returned", capability="images")
        return url

    def generate_images(self, context: ImageContext) -> ImageSet:
        images: list[ImageDescriptor] = []
        errors: list[ProviderError] = []
        for plan in image_plans(context.image_count):
            if context.cancelled():
                logger.info("Image generation cancelled after %d image(s)", len(images))
                raise ProviderError(CANCELLED, capability="images")
            prompt = plan.prompt.format(title=context.title)
            alt_text = f"{context.title} - {plan.alt_suffix}"
            try:
                url = self._generate_one(plan, prompt)
            except (openai.OpenAIError, ProviderError) as e:
                err = e if isinstance(e, ProviderError) else sdk_error_to_provider_error(e, "images")
                logger.warning("Image %s failed: %s", plan.id, err)
                errors.append(err)
                images.append(
                    ImageDescriptor(
                        id=plan.id,
                        url=placeholder_url(plan, alt_text),
                        alt_text=alt_text,
                        position=plan.position,
                        kind=plan.kind,
                        prompt=prompt,
                        fallback=True,
                        error=err.message,
                    )
                )
                continue
            images.append(
                ImageDescriptor(
                    id=plan.id,
                    url=url,
                    alt_text=alt_text,
                    position=plan.position,
                    kind=plan.kind,
                    prompt=prompt,
                )
            )

        if errors and len(errors) == len(images):
            raise ProviderError(
                f"all {len(images)} images failed: {errors[-1].message}",
                retryable=any(e.retryable for e in errors),
                capability="images",
            )
        return ImageSet(
            images=images,
            success_count=len(images) - len(errors),
            failed_count=len(errors),
        )
