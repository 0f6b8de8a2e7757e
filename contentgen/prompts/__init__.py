"""Jinja2 prompt templates for the LLM-backed capabilities."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

PROMPTS_DIR = Path(__file__).resolve().parent

_env = Environment(loader=FileSystemLoader(str(PROMPTS_DIR)), trim_blocks=True, lstrip_blocks=True)


def render_prompt(template_name: str, **kwargs: Any) -> str:
    return _env.get_template(template_name).render(**kwargs)
