"""
Model gateway: one blocking call to the messages API per chat turn.

No retries. A timeout is surfaced as a retryable GatewayTimeoutError so the
client can decide to resend.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.config import Settings
from app.errors import GatewayTimeoutError, GatewayUnavailableError, UpstreamError
from app.logging import get_logger
from app.services.llm.prompts import (
    MEAL_PLAN_PROMPT_NAME,
    MEAL_PLAN_PROMPT_VERSION,
    MEAL_PLAN_SYSTEM_PROMPT,
)
from app.storage.repositories import log_llm_call
from app.utils.timing import time_span

logger = get_logger(__name__)

# Upstream error bodies can be large HTML pages; keep the detail readable.
MAX_ERROR_BODY = 2000


@dataclass(frozen=True)
class ChatTurn:
    role: str  # user | assistant
    content: str


def turns_from_messages(messages: Iterable[Any]) -> list[ChatTurn]:
    """Stored chat rows -> model turns. Anything not sent by the user is the assistant."""
    return [
        ChatTurn(role="user" if m.sender == "user" else "assistant", content=m.message_text)
        for m in messages
    ]


def first_text_block(payload: dict) -> str:
    for block in payload.get("content") or []:
        if isinstance(block, dict) and block.get("type") == "text":
            return block.get("text") or ""
    return ""


class ModelGateway:
    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.Client] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._session_factory = session_factory

    @property
    def configured(self) -> bool:
        return bool(self._settings.llm_api_key)

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._settings.llm_api_key,
            "anthropic-version": self._settings.llm_api_version,
        }

    def _body(self, history: list[ChatTurn], system_prompt: str) -> dict:
        return {
            "model": self._settings.llm_model,
            "max_tokens": self._settings.llm_max_tokens,
            "system": system_prompt,
            "messages": [{"role": t.role, "content": t.content} for t in history],
        }

    def _post(self, body: dict) -> httpx.Response:
        if self._http is not None:
            return self._http.post(
                self._settings.llm_base_url,
                headers=self._headers(),
                json=body,
                timeout=self._settings.llm_timeout_s,
            )
        return httpx.post(
            self._settings.llm_base_url,
            headers=self._headers(),
            json=body,
            timeout=self._settings.llm_timeout_s,
        )

    def complete(
        self,
        history: list[ChatTurn],
        system_prompt: str = MEAL_PLAN_SYSTEM_PROMPT,
        session: Optional[Session] = None,
    ) -> str:
        """
        Send the conversation and return the first text block of the reply.

        The call is logged on `session` when given (the caller's own connection),
        otherwise on a session from `session_factory`.
        """
        if not self.configured:
            raise GatewayUnavailableError()

        body = self._body(history, system_prompt)
        model = self._settings.llm_model
        logger.info("llm.call.start prompt=%s model=%s turns=%s", MEAL_PLAN_PROMPT_NAME, model, len(history))
        status = "error"
        output = ""
        with time_span("llm.call", prompt=MEAL_PLAN_PROMPT_NAME, model=model) as span:
            try:
                resp = self._post(body)
                if not resp.is_success:
                    output = resp.text[:MAX_ERROR_BODY]
                    raise UpstreamError(
                        f"Model API error {resp.status_code}",
                        detail={"upstream_status": resp.status_code, "upstream_body": output},
                    )
                output = first_text_block(resp.json())
                status = "ok"
            except httpx.TimeoutException as exc:
                status = "timeout"
                output = str(exc)
                raise GatewayTimeoutError(detail={"timeout_s": self._settings.llm_timeout_s}) from exc
            except (httpx.HTTPError, json.JSONDecodeError) as exc:
                output = str(exc)
                raise UpstreamError(f"Model API request failed: {exc}") from exc
            finally:
                self._record(session, body, status, output, span.stop())
        return output

    def _record(self, session: Optional[Session], body: dict, status: str, output: str, latency_ms: int) -> None:
        logger.info("llm.call.end prompt=%s status=%s latency_ms=%s", MEAL_PLAN_PROMPT_NAME, status, latency_ms)
        if session is not None:
            self._write_log(session, body, status, output, latency_ms)
        elif self._session_factory is not None:
            with self._session_factory() as own_session:
                self._write_log(own_session, body, status, output, latency_ms)

    def _write_log(self, session: Session, body: dict, status: str, output: str, latency_ms: int) -> None:
        # A lost log row must not replace the reply or the real error.
        try:
            log_llm_call(
                session=session,
                prompt_name=MEAL_PLAN_PROMPT_NAME,
                prompt_version=MEAL_PLAN_PROMPT_VERSION,
                model=self._settings.llm_model,
                status=status,
                input_payload=json.dumps(body["messages"]),
                output_payload=output,
                latency_ms=latency_ms,
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("llm.call.log_failed prompt=%s error=%s", MEAL_PLAN_PROMPT_NAME, exc)
