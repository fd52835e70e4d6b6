from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from varianceqa.core.config import GeminiConfig
from varianceqa.core.errors import ApiError, ConfigError, FormatError, TransportError

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


def gemini_endpoint_url(cfg: GeminiConfig) -> str:
    host = cfg.host.rstrip("/")
    return f"{host}/v1beta/models/{cfg.model}:generateContent"


def build_generate_payload(prompt: str, generation_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
    if generation_config:
        payload["generationConfig"] = generation_config
    return payload


def error_message_from_response(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_ERROR_MESSAGE
    if not isinstance(body, dict):
        return UNKNOWN_ERROR_MESSAGE
    error = body.get("error")
    if isinstance(error, dict):
        message = str(error.get("message") or "").strip()
        if message:
            return message
    return UNKNOWN_ERROR_MESSAGE


def first_candidate_text(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = (candidates[0] or {}).get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


class GeminiClient:
    """Single-shot calls to the generateContent endpoint. No retries."""

    def __init__(self, cfg: GeminiConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self.cfg.configured

    async def generate_text(self, prompt: str, generation_config: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Returns the first candidate text, or None when the response carries none."""
        if not self.configured:
            raise ConfigError()

        payload = build_generate_payload(prompt, generation_config)
        url = gemini_endpoint_url(self.cfg)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url,
                    params={"key": self.cfg.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as exc:
            logger.warning("Generation request failed before a response (model=%s): %s", self.cfg.model, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            message = error_message_from_response(response)
            logger.warning(
                "Generation request returned HTTP %s (model=%s): %s",
                response.status_code,
                self.cfg.model,
                message,
            )
            raise ApiError(message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise FormatError("generation response is not JSON") from exc

        logger.info("Generation request succeeded (model=%s code=%s)", self.cfg.model, response.status_code)
        return first_candidate_text(body)
