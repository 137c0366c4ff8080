import json
from types import SimpleNamespace

import httpx
import pytest
from openai import OpenAIError

from core.errors import AnswerError
from rag_services.llm import LangflowService, OpenAIChatService

API_URL = "https://langflow.example.com/api/v1/run/flow"


def langflow_reply(text):
    return {"outputs": [{"outputs": [{"results": {"message": {"text": text}}}]}]}


async def test_langflow_answer():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=langflow_reply("The total is $10."))

    service = LangflowService(API_URL, api_key="secret", transport=httpx.MockTransport(handler))

    assert await service.answer("prompt text") == "The total is $10."
    assert seen["auth"] == "Bearer secret"
    assert seen["body"] == {
        "input_value": "prompt text",
        "output_type": "chat",
        "input_type": "chat",
        "tweaks": {},
    }


async def test_langflow_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
    service = LangflowService(API_URL, transport=transport)

    with pytest.raises(AnswerError, match="502"):
        await service.answer("prompt")


async def test_langflow_unexpected_shape():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"outputs": []}))
    service = LangflowService(API_URL, transport=transport)

    with pytest.raises(AnswerError, match="Unexpected response format"):
        await service.answer("prompt")


async def test_langflow_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    service = LangflowService(API_URL, timeout=1, transport=httpx.MockTransport(handler))

    with pytest.raises(AnswerError, match="did not answer"):
        await service.answer("prompt")


async def test_langflow_requires_url():
    with pytest.raises(AnswerError):
        await LangflowService("").answer("prompt")


class FakeOpenAI:
    def __init__(self, reply):
        self.reply = reply
        self.chat = SimpleNamespace(completions=self)
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.reply, Exception):
            raise self.reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.reply))])


async def test_openai_answer():
    client = FakeOpenAI("It says hello.")
    service = OpenAIChatService(model="gpt-4o-mini", client=client)

    assert await service.answer("prompt") == "It says hello."
    assert client.kwargs["messages"] == [{"role": "user", "content": "prompt"}]


async def test_openai_error_becomes_answer_error():
    service = OpenAIChatService(client=FakeOpenAI(OpenAIError("quota")))

    with pytest.raises(AnswerError, match="quota"):
        await service.answer("prompt")
