"""YAML-backed prompt catalog for the completion service."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping

import yaml
from langchain_core.prompts import PromptTemplate

from .settings import settings

QUESTION_GENERATION = "question_generation"
CODE_EVALUATION = "code_evaluation"
FINAL_ASSESSMENT = "final_assessment"
FOLLOW_UP = "follow_up"

TEMPLATE_IDS = (QUESTION_GENERATION, CODE_EVALUATION, FINAL_ASSESSMENT, FOLLOW_UP)


def _load_yaml(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(item).strip() for item in value if str(item).strip())
    return str(value)


class PromptCatalog:
    """Compiled prompt templates keyed by template id."""

    def __init__(self, templates: Mapping[str, str]) -> None:
        self._templates: Dict[str, PromptTemplate] = {
            template_id: PromptTemplate.from_template(text) for template_id, text in templates.items()
        }

    @classmethod
    def load(cls, path: str | None = None) -> "PromptCatalog":
        cfg = _load_yaml(path or settings.PROMPTS_PATH or default_prompts_path())
        templates = {
            template_id: entry["template"]
            for template_id, entry in (cfg.get("templates") or {}).items()
        }
        return cls(templates)

    def template_ids(self) -> List[str]:
        return sorted(self._templates)

    def variables(self, template_id: str) -> List[str]:
        return sorted(self._get(template_id).input_variables)

    def render(self, template_id: str, variables: Mapping[str, Any]) -> str:
        """Render ``template_id`` with ``variables``; lists are joined with commas."""

        template = self._get(template_id)
        missing = sorted(set(template.input_variables) - set(variables))
        if missing:
            raise ValueError(f"Template '{template_id}' missing variables: {', '.join(missing)}")
        values = {name: _as_text(variables[name]) for name in template.input_variables}
        return template.format(**values)

    def _get(self, template_id: str) -> PromptTemplate:
        if template_id not in self._templates:
            raise KeyError(f"Unknown prompt template: {template_id}")
        return self._templates[template_id]


def default_prompts_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts.yaml")


__all__ = [
    "CODE_EVALUATION",
    "FINAL_ASSESSMENT",
    "FOLLOW_UP",
    "PromptCatalog",
    "QUESTION_GENERATION",
    "TEMPLATE_IDS",
    "default_prompts_path",
]
