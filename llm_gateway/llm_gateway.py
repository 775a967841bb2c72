from __future__ import annotations  # Completion-service gateway

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

import httpx

from config import LlmRoute, PromptCatalog, TEMPLATE_IDS, load_app_registry, settings
from observability import span


logger = logging.getLogger(__name__)  # Module logger setup

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "app_config.json"

_MODEL_LOCKS: Dict[str, threading.Lock] = {}
_MODEL_LOCKS_GUARD = threading.Lock()


class CompletionClient(Protocol):  # What the services need from a completion backend
    def complete(self, template_id: str, variables: Mapping[str, Any]) -> str: ...

    def stream(self, template_id: str, variables: Mapping[str, Any]) -> Iterator[str]: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmTimeoutError(LlmGatewayError):  # Completion call exceeded the route timeout
    pass


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _MODEL_LOCKS_GUARD:
        lock = _MODEL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MODEL_LOCKS[key] = lock
    return lock


@contextmanager
def _sequential(cfg: LlmRoute) -> Iterator[None]:  # Serialize calls on routes marked sequential
    if not cfg.sequential:
        yield
        return
    with _lock_for(cfg):
        yield


class CompletionService:
    """Render a prompt template and send it to the route registered for it.

    Speaks the OpenAI-compatible chat completions protocol over ``httpx``,
    either as one blocking request or as a server-sent-event stream.
    """

    def __init__(
        self,
        catalog: PromptCatalog,
        routes: Mapping[str, LlmRoute],
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._catalog = catalog
        self._routes = dict(routes)
        self._client = client or httpx.Client()
        self._owns_client = client is None

    @classmethod
    def from_config(
        cls,
        config_path: Optional[str] = None,
        prompts_path: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> "CompletionService":
        path = Path(config_path or settings.APP_CONFIG_PATH or DEFAULT_CONFIG_PATH)
        routes = load_app_registry(path, TEMPLATE_IDS)
        return cls(PromptCatalog.load(prompts_path), routes, client=client)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def route(self, template_id: str) -> LlmRoute:
        if template_id not in self._routes:
            raise KeyError(f"No route registered for template '{template_id}'")
        return self._routes[template_id]

    def complete(self, template_id: str, variables: Mapping[str, Any]) -> str:
        """Return the full completion text for ``template_id``."""

        cfg = self.route(template_id)
        payload = self._payload(cfg, template_id, variables, stream=False)
        logger.info("LLM request start route=%s model=%s template=%s", cfg.name, cfg.model, template_id)
        with _sequential(cfg), span("completion", template=template_id, route=cfg.name) as fields:
            try:
                response = self._client.post(
                    f"{cfg.base_url}{cfg.endpoint}",
                    json=payload,
                    headers=_headers(cfg),
                    timeout=cfg.timeout_s,
                )
            except httpx.TimeoutException as exc:
                logger.error("LLM request timed out after %ss: %s", cfg.timeout_s, exc)
                raise LlmTimeoutError(f"LLM request timed out after {cfg.timeout_s}s") from exc
            except httpx.HTTPError as exc:
                logger.error("LLM transport failure: %s", exc)
                raise LlmGatewayError("LLM transport failed") from exc
            fields["status"] = response.status_code
            if response.status_code >= 400:
                logger.error("LLM error status: %s", response.status_code)
                raise LlmGatewayError(f"LLM returned status {response.status_code}")
            try:
                data = response.json()
            except ValueError as exc:
                logger.error("Invalid JSON payload from LLM: %s", exc)
                raise LlmGatewayError("LLM payload was not JSON") from exc
            return _extract_content(data)

    def stream(self, template_id: str, variables: Mapping[str, Any]) -> Iterator[str]:
        """Yield completion text as it arrives; same template contract as ``complete``."""

        cfg = self.route(template_id)
        payload = self._payload(cfg, template_id, variables, stream=True)
        logger.info("LLM stream start route=%s model=%s template=%s", cfg.name, cfg.model, template_id)
        with _sequential(cfg), span("completion", template=template_id, route=cfg.name, mode="stream") as fields:
            try:
                with self._client.stream(
                    "POST",
                    f"{cfg.base_url}{cfg.endpoint}",
                    json=payload,
                    headers=_headers(cfg),
                    timeout=cfg.timeout_s,
                ) as response:
                    fields["status"] = response.status_code
                    if response.status_code >= 400:
                        response.read()
                        logger.error("LLM error status: %s", response.status_code)
                        raise LlmGatewayError(f"LLM returned status {response.status_code}")
                    for line in response.iter_lines():
                        text = _sse_text(line)
                        if text is None:
                            break
                        if text:
                            yield text
            except httpx.TimeoutException as exc:
                logger.error("LLM stream timed out after %ss: %s", cfg.timeout_s, exc)
                raise LlmTimeoutError(f"LLM request timed out after {cfg.timeout_s}s") from exc
            except httpx.HTTPError as exc:
                logger.error("LLM transport failure: %s", exc)
                raise LlmGatewayError("LLM transport failed") from exc

    def _payload(
        self,
        cfg: LlmRoute,
        template_id: str,
        variables: Mapping[str, Any],
        *,
        stream: bool,
    ) -> Dict[str, Any]:
        prompt = self._catalog.render(template_id, variables)
        payload: Dict[str, Any] = {
            "model": cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": cfg.temperature,
        }
        if stream:
            payload["stream"] = True
        return payload


def _headers(cfg: LlmRoute) -> Dict[str, str]:  # Build request headers for a route
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _sse_text(line: str) -> Optional[str]:
    """Text carried by one server-sent-event line; ``None`` marks the end of the stream."""

    line = line.strip()
    if not line.startswith("data:"):
        return ""
    data = line[len("data:") :].strip()
    if data == "[DONE]":
        return None
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("Skipping undecodable stream chunk: %s", data[:120])
        return ""
    choices = chunk.get("choices") if isinstance(chunk, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


__all__ = [
    "CompletionClient",
    "CompletionService",
    "DEFAULT_CONFIG_PATH",
    "LlmGatewayError",
    "LlmTimeoutError",
]
