"""Completion-service route configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str = "/v1/chat/completions"
    model: str
    timeout_s: float = Field(default=60.0, ge=0.1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_registry(cfg: AppConfig, template_ids: Iterable[str]) -> Dict[str, LlmRoute]:
    """Map every prompt template to the route configured for it."""

    resolved: Dict[str, LlmRoute] = {}
    for template_id in template_ids:
        if template_id not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{template_id}'")
        route_id = cfg.registry[template_id]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{template_id}'")
        resolved[template_id] = cfg.llm_routes[route_id]
    return resolved


def load_app_registry(path: Path, template_ids: Iterable[str]) -> Dict[str, LlmRoute]:
    """Load configuration and build the template registry."""

    cfg = load_config(path)
    return resolve_registry(cfg, template_ids)


__all__ = ["AppConfig", "LlmRoute", "load_app_registry", "load_config", "resolve_registry"]
