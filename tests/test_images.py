"""Tests for the image generation adapter with a fake OpenAI client."""

import threading
from types import SimpleNamespace

import httpx
import openai
import pytest

from contentgen.errors import ProviderError
from contentgen.providers.images import OpenAIImageClient, image_plans, placeholder_url
from contentgen.schemas.provider_schemas import ImageContext

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/images/generations")


class FakeImages:
    def __init__(self, fail_sizes=(), error=None):
        self.fail_sizes = set(fail_sizes)
        self.error = error or openai.APIConnectionError(request=_REQUEST)
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs["size"] in self.fail_sizes:
            raise self.error
        n = len(self.calls)
        return SimpleNamespace(data=[SimpleNamespace(url=f"https://img.test/{n}.png")])


def _client(images):
    return OpenAIImageClient(SimpleNamespace(images=images), model="dall-e-3", timeout=120)


def test_image_plans_clamped():
    assert len(image_plans(0)) == 1
    assert len(image_plans(3)) == 3
    assert len(image_plans(10)) == 6
    assert image_plans(1)[0].id == "featured-image"


def test_placeholder_sizes():
    featured, diagram = image_plans(2)
    assert "1280x720" in placeholder_url(featured, "A title")
    assert "1024x768" in placeholder_url(diagram, "A title")
    assert "A%20title" in placeholder_url(diagram, "A title")


def test_generate_images():
    images = FakeImages()
    result = _client(images).generate_images(ImageContext(title="CRM Guide", image_count=3))

    assert result.success_count == 3
    assert result.failed_count == 0
    assert [i.id for i in result.images] == ["featured-image", "concept-diagram", "process-visualization"]
    assert result.images[0].alt_text == "CRM Guide - Professional guide and insights"
    assert result.images[0].url == "https://img.test/1.png"
    assert images.calls[0]["size"] == "1792x1024"
    assert images.calls[1]["size"] == "1024x1024"
    assert images.calls[0]["timeout"] == 120
    assert "CRM Guide" in images.calls[0]["prompt"]


def test_failed_image_becomes_placeholder():
    images = FakeImages(fail_sizes={"1024x1024"})
    result = _client(images).generate_images(ImageContext(title="CRM Guide", image_count=2))

    assert result.success_count == 1
    assert result.failed_count == 1
    placeholder = result.images[1]
    assert placeholder.fallback is True
    assert placeholder.url.startswith("https://via.placeholder.com/1024x768/")
    assert placeholder.error


def test_all_images_failing_is_provider_error():
    images = FakeImages(fail_sizes={"1792x1024", "1024x1024"})
    with pytest.raises(ProviderError) as exc_info:
        _client(images).generate_images(ImageContext(title="CRM Guide", image_count=2))
    assert exc_info.value.retryable is True
    assert exc_info.value.capability == "images"


def test_all_images_rejected_is_not_retryable():
    error = openai.BadRequestError(
        "content policy", response=httpx.Response(400, request=_REQUEST), body=None
    )
    images = FakeImages(fail_sizes={"1792x1024"}, error=error)
    with pytest.raises(ProviderError) as exc_info:
        _client(images).generate_images(ImageContext(title="CRM Guide", image_count=1))
    assert exc_info.value.retryable is False


def test_cancel_during_an_image_stops_before_the_next():
    cancel = threading.Event()

    class CancelledMidCall(FakeImages):
        def generate(self, **kwargs):
            cancel.set()
            return super().generate(**kwargs)

    images = CancelledMidCall()
    context = ImageContext(title="CRM Guide", image_count=6, cancel_event=cancel)
    with pytest.raises(ProviderError) as exc_info:
        _client(images).generate_images(context)

    assert exc_info.value.message == "cancelled"
    assert exc_info.value.retryable is False
    assert len(images.calls) == 1


def test_unset_cancel_event_runs_every_image():
    images = FakeImages()
    context = ImageContext(title="CRM Guide", image_count=2, cancel_event=threading.Event())
    assert _client(images).generate_images(context).success_count == 2
