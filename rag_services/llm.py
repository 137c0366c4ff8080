"""
Answering backends for document chat
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from openai import OpenAI, OpenAIError

from core.errors import AnswerError

logger = logging.getLogger(__name__)


class AnsweringService(Protocol):
    async def answer(self, prompt: str) -> str: ...


class LangflowService:
    """Sends the prompt to a hosted Langflow flow and returns its chat output."""

    def __init__(self, api_url: str, api_key: Optional[str] = None, timeout: float = 120.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        try:
            text = data["outputs"][0]["outputs"][0]["results"]["message"]["text"]
        except (KeyError, IndexError, TypeError):
            raise AnswerError("Unexpected response format from Langflow")
        if not isinstance(text, str):
            raise AnswerError("Unexpected response format from Langflow")
        return text

    async def answer(self, prompt: str) -> str:
        if not self.api_url:
            raise AnswerError("LANGFLOW_API_URL is not configured")

        body = {
            "input_value": prompt,
            "output_type": "chat",
            "input_type": "chat",
            "tweaks": {},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.api_url, json=body, headers=self._headers())
        except httpx.TimeoutException:
            raise AnswerError(f"Langflow did not answer within {self.timeout:g}s")
        except httpx.HTTPError as e:
            raise AnswerError(f"Langflow request failed: {str(e)}")

        if resp.status_code >= 400:
            logger.error("Langflow API error: %s", resp.text)
            raise AnswerError(f"Langflow API error: {resp.status_code} {resp.reason_phrase}")

        try:
            data = resp.json()
        except ValueError:
            raise AnswerError("Langflow returned a non-JSON response")
        return self._extract_text(data)


class OpenAIChatService:
    """Answers with an OpenAI chat model."""

    def __init__(self, model: str = "gpt-4o-mini", temperature: float = 0.3, max_tokens: int = 1000,
                 timeout: float = 120.0, client: Optional[OpenAI] = None):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        return response.choices[0].message.content or ""

    async def answer(self, prompt: str) -> str:
        if self._client is None:
            try:
                self._client = OpenAI(timeout=self.timeout)
            except OpenAIError as e:
                raise AnswerError(f"OpenAI client could not be initialized: {e}")

        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self._generate, prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise AnswerError(f"OpenAI did not answer within {self.timeout:g}s")
        except OpenAIError as e:
            raise AnswerError(f"OpenAI request failed: {str(e)}")
