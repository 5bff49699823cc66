"""MiniMax chat-completion client.

Thin aiohttp wrapper around the MiniMax v2 chat completions endpoint, used
as the decision oracle of the LLM solo contestant.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from ..exceptions import OracleError, OracleResponseError

DEFAULT_SYSTEM_PROMPT = "You are a professional cryptocurrency trader."


class MiniMaxClient:
    """MiniMax API client.

    Setup:
    1. Create an API key in the MiniMax console
    2. Set MINIMAX_API_KEY (and MINIMAX_GROUP_ID if your account has one)

    Example:
        >>> client = MiniMaxClient(api_key, group_id)
        >>> reply = await client.chat("BTCUSDT 24h ...", system_prompt)
    """

    BASE_URL = "https://api.minimax.chat/v1/text/chatcompletion_v2"

    def __init__(
        self,
        api_key: str,
        group_id: Optional[str] = None,
        model: str = "MiniMax-Text-01",
        timeout_seconds: float = 60.0,
    ):
        """Initialize MiniMax client.

        Args:
            api_key: MiniMax API key
            group_id: Optional account group id (sent as ?GroupId=)
            model: Chat model name
            timeout_seconds: Total request timeout
        """
        if not api_key:
            raise OracleError("MiniMax API key is required")

        self.api_key = api_key
        self.group_id = group_id
        self.model = model
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.logger = logging.getLogger(__name__)

    @property
    def url(self) -> str:
        if self.group_id:
            return f"{self.BASE_URL}?GroupId={self.group_id}"
        return self.BASE_URL

    async def chat(self, prompt: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> str:
        """Send one system + user exchange and return the completion text.

        Raises:
            OracleResponseError: Non-2xx status, a non-JSON body, or a response
                without a usable text choice
            OracleError: Transport failure
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "tools": [],
            "tool_choice": "none",
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=payload, headers=headers) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise OracleResponseError(
                            f"MiniMax API error: {error_text[:500]}",
                            status_code=response.status,
                            body=error_text[:2000],
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        error_text = await response.text()
                        raise OracleResponseError(
                            f"MiniMax API returned a non-JSON body: {e}",
                            status_code=response.status,
                            body=error_text[:2000],
                        ) from e

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise OracleError(f"MiniMax request failed: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            base_resp = (data.get("base_resp") if isinstance(data, dict) else None) or {}
            self.logger.error("oracle_empty_response", extra={"response": str(data)[:2000]})
            if base_resp.get("status_msg"):
                raise OracleResponseError(
                    f"MiniMax API error: {base_resp['status_msg']}",
                    status_code=base_resp.get("status_code"),
                )
            raise OracleResponseError("MiniMax API returned no completion choices")

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            self.logger.error("oracle_malformed_response", extra={"response": str(data)[:2000]})
            raise OracleResponseError(f"MiniMax API returned a malformed choice: {e!r}") from e

        if not isinstance(content, str):
            raise OracleResponseError(
                f"MiniMax API returned non-text content: {type(content).__name__}"
            )
        return content
