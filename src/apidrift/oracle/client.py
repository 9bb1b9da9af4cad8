"""HTTP client for the reasoning oracle (Gemini generateContent)."""

from __future__ import annotations

from logging import getLogger
from typing import Any, Optional, Protocol

import httpx

from apidrift.config import Settings
from apidrift.errors import OracleRequestError, OracleTimeout

log = getLogger(__name__)


class OracleClient(Protocol):
    """Opaque text-in / text-out reasoning service."""

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str: ...


def _candidate_text(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout_seconds: float,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.Client] = None) -> "GeminiClient":
        return cls(
            api_key=settings.require_api_key(),
            model=settings.model,
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            http_client=http_client,
        )

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        log.debug("oracle request model=%s prompt_chars=%d", self.model, len(prompt))

        client = self._http or httpx.Client()
        try:
            resp = client.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise OracleTimeout(f"oracle did not answer within {self.timeout_seconds:g}s") from e
        except httpx.HTTPError as e:
            raise OracleRequestError(f"oracle request failed: {e}") from e
        finally:
            if self._http is None:
                client.close()

        if resp.status_code >= 400:
            raise OracleRequestError(
                f"oracle returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                raw_text=resp.text,
            )
        try:
            payload = resp.json()
        except ValueError as e:
            raise OracleRequestError("oracle returned a non-JSON envelope", raw_text=resp.text) from e
        return _candidate_text(payload)
