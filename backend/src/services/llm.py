"""Chat-completion client for an OpenAI-compatible LLM endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class LLMServiceError(Exception):
    """Raised when a completion cannot be obtained."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMService:
    """Stateless text completion over a shared ``httpx.AsyncClient``.

    The client is created by the caller (once per process) and closed with
    ``aclose()`` on shutdown.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        model: str = "gpt-4",
        api_key: Optional[str] = None,
    ) -> None:
        self.client = client
        self.model = model
        self.api_key = api_key

    @classmethod
    def create(
        cls,
        api_base: str,
        *,
        model: str = "gpt-4",
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "LLMService":
        client = httpx.AsyncClient(base_url=api_base, timeout=timeout, transport=transport)
        return cls(client, model=model, api_key=api_key)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def complete(self, messages: List[Message], *, json_mode: bool = False) -> str:
        """
        Return the first choice's message text ("" when the model sent none).

        Raises:
            LLMServiceError: on HTTP errors, timeouts, transport failures or an
                unexpected response shape.
        """
        if not self.api_key:
            raise LLMServiceError("No LLM API key configured. Set LLM_API_KEY.")

        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.post(
                "/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"LLM API error: {e.response.status_code} - {e.response.text}")
            raise LLMServiceError(
                f"API error: {e.response.status_code}",
                {"status_code": e.response.status_code},
            ) from e
        except httpx.TimeoutException as e:
            logger.error("LLM API timeout")
            raise LLMServiceError("Request timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"LLM API request failed: {e}")
            raise LLMServiceError(f"Request failed: {e}") from e
        except ValueError as e:
            logger.error("LLM API returned invalid JSON")
            raise LLMServiceError("Invalid JSON response from LLM API") from e

        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise LLMServiceError("Unexpected LLM response shape", {"response": data}) from e

        usage = data.get("usage", {}) if isinstance(data, dict) else {}
        logger.debug(
            "LLM completion received",
            extra={"model": self.model, "tokens_used": usage.get("total_tokens", 0)},
        )
        return content or ""


__all__ = ["LLMService", "LLMServiceError", "Message"]
