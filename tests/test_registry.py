"""Tests for the stage registry."""

import pytest
from pydantic import ValidationError

from contentgen.pipeline.registry import (
    DEFAULT_MANDATORY,
    build_registry,
    get_stage,
    stage_ids,
    stages,
)

EXPECTED_ORDER = [
    "setup",
    "keyword-research",
    "advanced-keyword-analysis",
    "serp-analysis",
    "perplexity-research",
    "content-strategy",
    "article-generation",
    "seo-optimization",
    "image-generation",
    "quality-assurance",
]


def test_stage_order():
    assert stage_ids() == EXPECTED_ORDER


def test_default_mandatory_stages():
    mandatory = {s.id for s in stages() if not s.optional}
    assert mandatory == {"setup", "content-strategy", "article-generation"}
    assert mandatory == set(DEFAULT_MANDATORY)


def test_weights_sum_to_100():
    assert sum(s.weight for s in stages()) == 100


def test_dependencies_and_inputs_precede_stage():
    seen = set()
    for stage in stages():
        assert set(stage.depends_on) <= seen
        assert set(stage.inputs) <= seen
        seen.add(stage.id)


def test_article_depends_on_strategy():
    assert get_stage("article-generation").depends_on == frozenset({"content-strategy"})
    for sid in ("seo-optimization", "image-generation", "quality-assurance"):
        assert get_stage(sid).depends_on == frozenset({"article-generation"})


def test_build_registry_with_extra_mandatory_stage():
    registry = build_registry(DEFAULT_MANDATORY | {"keyword-research"})
    assert get_stage("keyword-research", registry).optional is False
    assert get_stage("keyword-research").optional is True
    assert stage_ids(registry) == EXPECTED_ORDER


def test_build_registry_unknown_stage():
    with pytest.raises(ValueError, match="Unknown stage"):
        build_registry({"setup", "publish"})


def test_get_stage_unknown():
    with pytest.raises(KeyError):
        get_stage("publish")


def test_registry_is_read_only():
    assert stages() is stages()
    with pytest.raises(ValidationError):
        stages()[0].optional = True
