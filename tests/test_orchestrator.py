from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from calendar_copilot.config import AppSettings, LlmSettings, McpSettings, RetrySettings
from calendar_copilot.domain import ErrorStage, OperationKind, OperationResult
from calendar_copilot.orchestrator import CalendarChatOrchestrator


@pytest.fixture
def app_settings(calendar_settings) -> AppSettings:
    return AppSettings(
        calendar=calendar_settings,
        mcp=McpSettings(
            url=None,
            command=None,
            args=(),
            credentials_path=None,
            token_path=None,
            connect_timeout=10.0,
            client_name="calendar-copilot-tests",
        ),
        llm=LlmSettings(api_key=None, model="gpt-4o-mini", base_url=None, organization=None, project=None),
        retry=RetrySettings(attempts=2, base_backoff=0.5),
    )


def _upstream() -> OperationResult:
    return OperationResult.failure(ErrorStage.UPSTREAM, "backend down", kind=OperationKind.LIST)


def _completion(content: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_upstream_failure_is_retried_with_backoff(self, app_settings):
        success = OperationResult.success(OperationKind.LIST, {"events": []}, message="Here is your week")
        interpreter = MagicMock()
        interpreter.handle = AsyncMock(side_effect=[_upstream(), _upstream(), success])
        sleep = AsyncMock()
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, sleep=sleep)

        result, attempts = await orchestrator.run_command('{"kind": "list"}')

        assert result is success
        assert attempts == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, app_settings):
        interpreter = MagicMock()
        interpreter.handle = AsyncMock(return_value=_upstream())
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, sleep=AsyncMock())

        result, attempts = await orchestrator.run_command('{"kind": "list"}')

        assert result.stage is ErrorStage.UPSTREAM
        assert attempts == 3
        assert interpreter.handle.await_count == 3

    @pytest.mark.asyncio
    async def test_validation_failure_is_not_retried(self, app_settings):
        failure = OperationResult.failure(ErrorStage.VALIDATE, "title is required", kind=OperationKind.CREATE)
        interpreter = MagicMock()
        interpreter.handle = AsyncMock(return_value=failure)
        sleep = AsyncMock()
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, sleep=sleep)

        result, attempts = await orchestrator.run_command('{"kind": "create"}')

        assert result is failure
        assert attempts == 1
        sleep.assert_not_awaited()


class TestRespond:
    @pytest.mark.asyncio
    async def test_prose_reply_falls_through(self, app_settings):
        interpreter = MagicMock()
        interpreter.handle = AsyncMock(return_value=OperationResult.failure(ErrorStage.EXTRACT, "no command"))
        llm = MagicMock()
        llm.chat.completions.create = AsyncMock(return_value=_completion("  Enjoy your free evening!  "))
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, llm_client=llm)

        reply = await orchestrator.respond([], "anything on tonight?")

        assert reply.text == "Enjoy your free evening!"
        assert not reply.has_command
        messages = llm.chat.completions.create.await_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert '"kind": "create"' in messages[0]["content"]
        assert messages[-1] == {"role": "user", "content": "anything on tonight?"}

    @pytest.mark.asyncio
    async def test_command_reply_uses_human_message(self, app_settings):
        result = OperationResult.success(OperationKind.CREATE, {"event": {}}, message="Booked your study session.")
        interpreter = MagicMock()
        interpreter.handle = AsyncMock(return_value=result)
        llm = MagicMock()
        llm.chat.completions.create = AsyncMock(return_value=_completion('{"kind": "create"}'))
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, llm_client=llm)

        reply = await orchestrator.respond([], "book study time")

        assert reply.text == "Booked your study session."
        assert reply.has_command

    @pytest.mark.asyncio
    async def test_model_failure_is_reported(self, app_settings):
        interpreter = MagicMock()
        llm = MagicMock()
        llm.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        orchestrator = CalendarChatOrchestrator(interpreter, app_settings, llm_client=llm)

        reply = await orchestrator.respond([], "hi")

        assert "rate limited" in reply.text
        assert reply.result is None

    @pytest.mark.asyncio
    async def test_unconfigured_model(self, app_settings):
        orchestrator = CalendarChatOrchestrator(MagicMock(), app_settings)

        reply = await orchestrator.respond([], "hi")

        assert "OPENAI_API_KEY" in reply.text
