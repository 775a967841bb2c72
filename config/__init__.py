"""Configuration package for the interview tracker."""
from .llm import AppConfig, LlmRoute, load_app_registry, load_config, resolve_registry
from .prompts import (
    CODE_EVALUATION,
    FINAL_ASSESSMENT,
    FOLLOW_UP,
    QUESTION_GENERATION,
    TEMPLATE_IDS,
    PromptCatalog,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
    "CODE_EVALUATION",
    "FINAL_ASSESSMENT",
    "FOLLOW_UP",
    "QUESTION_GENERATION",
    "TEMPLATE_IDS",
    "PromptCatalog",
    "Settings",
    "settings",
]
