from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import CompletionClient, CompletionService, LlmGatewayError, LlmTimeoutError

__all__ = ["CompletionClient", "CompletionService", "LlmGatewayError", "LlmTimeoutError"]
