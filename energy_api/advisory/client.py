"""Cliente del servicio externo de generación de texto (API compatible OpenAI)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


class ChatCompletionClient:
    """POST {base_url}/chat/completions con un mensaje system + user."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def complete(self, system: str, user: str) -> str:
        """Devuelve el texto generado.

        Raises:
            UpstreamError: error de red, HTTP no 2xx o respuesta sin contenido
        """
        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0.3,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("[ADVISORY] Upstream returned %s", e.response.status_code)
            raise UpstreamError(f"upstream status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("[ADVISORY] Upstream unreachable: %s", type(e).__name__)
            raise UpstreamError(f"upstream unreachable: {type(e).__name__}") from e
        except ValueError as e:
            raise UpstreamError("upstream returned invalid JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("upstream response without choices") from e

        if not isinstance(content, str) or not content.strip():
            raise UpstreamError("upstream returned empty content")
        return content.strip()
