import json

import httpx
import pytest
import respx
from httpx import Response
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine, select

from app.errors import GatewayTimeoutError, GatewayUnavailableError, UpstreamError
from app.services.llm.gateway import ChatTurn, ModelGateway, first_text_block
from app.storage.models import LLMCallLog
from conftest import LLM_URL, make_settings

HISTORY = [
    ChatTurn(role="user", content="Plan my week"),
    ChatTurn(role="assistant", content="How many people?"),
    ChatTurn(role="user", content="Two"),
]


@respx.mock
def test_complete_sends_system_prompt_and_history(settings):
    route = respx.post(LLM_URL).mock(
        return_value=Response(
            200,
            json={"content": [{"type": "tool_use", "id": "x"}, {"type": "text", "text": "Here is a plan"}]},
        )
    )
    gateway = ModelGateway(settings)

    assert gateway.complete(HISTORY) == "Here is a plan"

    request = route.calls.last.request
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == settings.llm_api_version
    body = json.loads(request.content)
    assert body["model"] == settings.llm_model
    assert body["max_tokens"] == settings.llm_max_tokens
    assert "My Food SORTED" in body["system"]
    assert body["messages"] == [
        {"role": "user", "content": "Plan my week"},
        {"role": "assistant", "content": "How many people?"},
        {"role": "user", "content": "Two"},
    ]


def test_unconfigured_gateway_fails_without_calling_upstream():
    gateway = ModelGateway(make_settings(llm_api_key=""))
    assert gateway.configured is False
    with pytest.raises(GatewayUnavailableError) as excinfo:
        gateway.complete(HISTORY)
    assert excinfo.value.status_code == 503


@respx.mock
def test_upstream_error_carries_status_and_body(settings):
    respx.post(LLM_URL).mock(return_value=Response(529, text='{"type":"overloaded_error"}'))
    with pytest.raises(UpstreamError) as excinfo:
        ModelGateway(settings).complete(HISTORY)
    err = excinfo.value
    assert err.status_code == 502
    assert err.extra_detail["upstream_status"] == 529
    assert "overloaded_error" in err.extra_detail["upstream_body"]


@respx.mock
def test_timeout_is_retryable_gateway_error(settings):
    respx.post(LLM_URL).mock(side_effect=httpx.ReadTimeout("slow"))
    with pytest.raises(GatewayTimeoutError) as excinfo:
        ModelGateway(settings).complete(HISTORY)
    assert excinfo.value.retryable is True
    assert excinfo.value.status_code == 503


@respx.mock
def test_connection_error_is_upstream_error(settings):
    respx.post(LLM_URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(UpstreamError) as excinfo:
        ModelGateway(settings).complete(HISTORY)
    assert excinfo.value.retryable is False


@respx.mock
def test_calls_are_logged(settings, engine):
    respx.post(LLM_URL).mock(return_value=Response(200, json={"content": [{"type": "text", "text": "ok"}]}))
    gateway = ModelGateway(settings, session_factory=lambda: Session(engine))
    gateway.complete(HISTORY)

    with Session(engine) as session:
        logs = list(session.exec(select(LLMCallLog)))
    assert len(logs) == 1
    assert logs[0].status == "ok"
    assert logs[0].output_payload == "ok"
    assert logs[0].model == settings.llm_model


@respx.mock
def test_failed_calls_are_logged_too(settings, engine):
    respx.post(LLM_URL).mock(return_value=Response(500, text="boom"))
    gateway = ModelGateway(settings, session_factory=lambda: Session(engine))
    with pytest.raises(UpstreamError):
        gateway.complete(HISTORY)

    with Session(engine) as session:
        log = session.exec(select(LLMCallLog)).one()
    assert log.status == "error"
    assert log.output_payload == "boom"


def test_first_text_block_defaults_to_empty():
    assert first_text_block({"content": []}) == ""
    assert first_text_block({}) == ""


@respx.mock
def test_call_is_logged_on_the_callers_session(settings, engine):
    respx.post(LLM_URL).mock(return_value=Response(200, json={"content": [{"type": "text", "text": "ok"}]}))

    def second_session():
        raise AssertionError("gateway opened its own session")

    gateway = ModelGateway(settings, session_factory=second_session)

    with Session(engine) as session:
        assert gateway.complete(HISTORY, session=session) == "ok"
        assert session.exec(select(LLMCallLog)).one().status == "ok"


def _engine_without_tables():
    return create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


@respx.mock
def test_log_failure_does_not_replace_reply(settings):
    respx.post(LLM_URL).mock(return_value=Response(200, json={"content": [{"type": "text", "text": "ok"}]}))
    broken = _engine_without_tables()
    gateway = ModelGateway(settings, session_factory=lambda: Session(broken))
    assert gateway.complete(HISTORY) == "ok"


@respx.mock
def test_log_failure_does_not_replace_upstream_error(settings):
    respx.post(LLM_URL).mock(return_value=Response(500, text="boom"))
    broken = _engine_without_tables()
    with Session(broken) as session:
        with pytest.raises(UpstreamError) as excinfo:
            ModelGateway(settings).complete(HISTORY, session=session)
    assert excinfo.value.extra_detail["upstream_status"] == 500
