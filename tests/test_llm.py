"""
Tests for the OpenAI-backed completion service, using a fake async client.
"""

import asyncio
from types import SimpleNamespace

import pytest

from app.agent.llm import OpenAICompletionService
from app.agent.responders import ResponderDescriptor
from app.core.errors import ServiceUnavailableError
from app.core.history import ContentPart, ConversationHistory, MessageItem
from app.core.tracing import trace


class FakeResponses:
    def __init__(self, response) -> None:
        self.response = response
        self.kwargs: dict = {}

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response


def _client(output_text: str, output: list | None = None):
    return SimpleNamespace(responses=FakeResponses(SimpleNamespace(output_text=output_text, output=output or [])))


def _message(text: str):
    return SimpleNamespace(type="message", content=[SimpleNamespace(type="output_text", text=text)])


RESPONDER = ResponderDescriptor(
    name="Catalogue",
    instructions="answer from the catalogue",
    model="gpt-4.1",
    tools=({"type": "file_search", "vector_store_ids": ["vs_1"]},),
    model_settings={"temperature": 1, "max_output_tokens": 2048, "unknown_setting": True},
)


def _history() -> ConversationHistory:
    return ConversationHistory(
        [
            MessageItem.user_text("pipes?"),
            MessageItem(role="assistant", content=(ContentPart(type="output_text", text="Which size?"),)),
            MessageItem(role="tool", content=(ContentPart(type="file_search_call", text="pipes"),)),
            MessageItem(role="assistant", content=(ContentPart(type="reasoning", text="hidden"),)),
        ]
    )


def test_request_carries_history_tools_and_settings() -> None:
    client = _client("Answer", [_message("Answer")])
    service = OpenAICompletionService(client=client)

    result = asyncio.run(service.run(RESPONDER, _history()))

    kwargs = client.responses.kwargs
    assert kwargs["model"] == "gpt-4.1"
    assert kwargs["instructions"] == "answer from the catalogue"
    assert kwargs["input"] == [
        {"role": "user", "content": [{"type": "input_text", "text": "pipes?"}]},
        {"role": "assistant", "content": "Which size?"},
    ]
    assert kwargs["tools"] == [{"type": "file_search", "vector_store_ids": ["vs_1"]}]
    assert kwargs["temperature"] == 1
    assert kwargs["max_output_tokens"] == 2048
    assert "unknown_setting" not in kwargs
    assert "text" not in kwargs
    assert result.final_output == "Answer"


def test_output_items_become_history_items() -> None:
    output = [
        SimpleNamespace(type="reasoning", summary=[SimpleNamespace(text="looking up")]),
        SimpleNamespace(type="file_search_call", queries=["ss 316", "fasteners"]),
        _message("SS 316 fasteners resist corrosion."),
        SimpleNamespace(type="web_search_call"),
    ]
    client = _client("SS 316 fasteners resist corrosion.", output)

    result = asyncio.run(OpenAICompletionService(client=client).run(RESPONDER, _history()))

    assert [(i.role, i.content[0].type, i.text) for i in result.new_items] == [
        ("assistant", "reasoning", "looking up"),
        ("tool", "file_search_call", "ss 316; fasteners"),
        ("assistant", "output_text", "SS 316 fasteners resist corrosion."),
    ]


def test_empty_output_is_none() -> None:
    result = asyncio.run(OpenAICompletionService(client=_client("")).run(RESPONDER, _history()))
    assert result.final_output is None


def test_structured_output_is_parsed() -> None:
    descriptor = ResponderDescriptor(
        name="Classifier",
        instructions="classify",
        model="gpt-5",
        output_schema={"type": "object"},
        output_schema_name="classifier",
    )
    client = _client('{"classification":"Catalogue_Agent"}')

    result = asyncio.run(OpenAICompletionService(client=client).run(descriptor, _history()))

    assert result.final_output == {"classification": "Catalogue_Agent"}
    fmt = client.responses.kwargs["text"]["format"]
    assert fmt["type"] == "json_schema"
    assert fmt["name"] == "classifier"
    assert fmt["strict"] is True


def test_unparseable_structured_output_is_none() -> None:
    descriptor = ResponderDescriptor(name="Classifier", instructions="", model="m", output_schema={})
    result = asyncio.run(OpenAICompletionService(client=_client("not json")).run(descriptor, _history()))
    assert result.final_output is None


def test_trace_metadata_attached_inside_span() -> None:
    client = _client("ok")
    service = OpenAICompletionService(client=client)

    async def go():
        with trace("RustX workflow", "wf_1", {"__trace_source__": "agent-builder"}) as span:
            await service.run(RESPONDER, _history())
            return span

    span = asyncio.run(go())
    assert client.responses.kwargs["metadata"] == {
        "__trace_source__": "agent-builder",
        "workflow_id": "wf_1",
        "trace_id": span.trace_id,
    }


def test_no_metadata_outside_span() -> None:
    client = _client("ok")
    asyncio.run(OpenAICompletionService(client=client).run(RESPONDER, _history()))
    assert "metadata" not in client.responses.kwargs


def test_missing_api_key_is_service_unavailable() -> None:
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr("app.agent.llm.OPENAI_API_KEY", "")
        with pytest.raises(ServiceUnavailableError):
            OpenAICompletionService().client
