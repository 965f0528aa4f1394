"""Tests for the oral-evidence analysis pipeline and session."""

import asyncio
import json

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from testimony_analyzer.analysis.models import (
    AnalysisState, GenerationError, MalformedOutputError, ValidationError
)
from testimony_analyzer.analysis.pipeline import AnalysisSession, OralEvidenceAnalyzer
from testimony_analyzer.analysis.prompts import ORAL_EVIDENCE_ANALYSIS_PROMPT
from testimony_analyzer.llm.gateway import AIGateway
from testimony_analyzer.llm.models import ExhaustedRetriesError, LLMProvider, MessageRole
from testimony_analyzer.utils.config import ProviderSettings


ANALYSIS = {
    "processo": {"numero": "0001234-56.2024.5.02.0001", "reclamante": "Ana", "reclamada": "ACME"},
    "depoentes": [{"id": "d1", "nome": "Ana", "qualificacao": "autor"}],
    "sinteses": [{"deponenteId": "d1", "conteudo": [{"texto": "fazia horas extras", "timestamp": "1m 02s"}]}],
    "sintesesPorTema": [{"tema": "Horas extras", "declaracoes": []}],
    "analises": [{
        "titulo": "Horas extras",
        "provaOral": [{"deponente": "Ana", "textoCorrente": "x"}],
        "conclusao": "Provado",
        "status": "favoravel-autor"
    }]
}


def claude_body(text):
    return {
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 1000, "output_tokens": 400, "cache_read_input_tokens": 200}
    }


def make_settings(provider="claude"):
    return ProviderSettings(provider=provider, api_keys={"claude": "k", "gemini": "k", "openai": "k", "grok": "k"})


def mock_gateway(response="{}", provider="claude"):
    gateway = Mock(spec=AIGateway)
    gateway.settings = make_settings(provider)
    gateway.resolve_provider.side_effect = lambda p: LLMProvider.from_id(p) or LLMProvider.CLAUDE
    gateway.call_ai = AsyncMock(return_value=response)
    return gateway


class TestOralEvidenceAnalyzer:
    """Test the analysis flow against a mocked gateway."""

    @pytest.mark.asyncio
    async def test_successful_analysis(self):
        gateway = mock_gateway("```json\n" + json.dumps(ANALYSIS) + "\n```")
        analyzer = OralEvidenceAnalyzer(gateway)

        result = await analyzer.analyze("transcript text", "case summary")

        assert result.processo["numero"] == "0001234-56.2024.5.02.0001"
        assert len(result.depoentes) == 1
        assert result.contradicoes == []
        assert len(result.sinteses_condensadas) == 1
        assert analyzer.state == AnalysisState.DONE

    @pytest.mark.asyncio
    async def test_single_call_with_system_prompt_and_ceiling(self):
        gateway = mock_gateway("{}")
        await OralEvidenceAnalyzer(gateway).analyze("transcript", "summary", "focus on overtime")

        gateway.call_ai.assert_awaited_once()
        messages, options = gateway.call_ai.await_args.args
        assert len(messages) == 1
        assert messages[0].role == MessageRole.USER
        assert "transcript" in messages[0].content
        assert "focus on overtime" in messages[0].content
        assert options.system_prompt == ORAL_EVIDENCE_ANALYSIS_PROMPT
        assert options.max_tokens == 64000

    @pytest.mark.asyncio
    async def test_ceiling_follows_active_provider_model(self):
        gateway = mock_gateway("{}", provider="openai")
        await OralEvidenceAnalyzer(gateway).analyze("transcript", "")

        _, options = gateway.call_ai.await_args.args
        assert options.max_tokens == 16384

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transcript", ["", "   \n\t"])
    async def test_blank_transcript_makes_no_call(self, transcript):
        gateway = mock_gateway()
        events = []
        analyzer = OralEvidenceAnalyzer(gateway)

        with pytest.raises(ValidationError):
            await analyzer.analyze(transcript, "summary", on_progress=lambda p, m: events.append(p))

        gateway.call_ai.assert_not_called()
        assert events == []
        assert analyzer.state == AnalysisState.IDLE

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_ends_at_100(self):
        events = []
        await OralEvidenceAnalyzer(mock_gateway("{}")).analyze(
            "transcript", "summary", on_progress=lambda p, m: events.append((p, m))
        )

        values = [p for p, _ in events]
        assert values == sorted(values)
        assert values == [5, 10, 30, 50, 65, 85, 100]
        assert events[-1] == (100, "Done!")

    @pytest.mark.asyncio
    async def test_gateway_failure_becomes_generation_error(self):
        gateway = mock_gateway()
        gateway.call_ai.side_effect = ExhaustedRetriesError("unavailable", attempts=3, status_code=503)
        analyzer = OralEvidenceAnalyzer(gateway)

        with pytest.raises(GenerationError, match="unavailable") as exc_info:
            await analyzer.analyze("transcript", "summary")

        assert exc_info.value.status_code == 503
        assert analyzer.state == AnalysisState.ERROR

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        analyzer = OralEvidenceAnalyzer(mock_gateway("I could not do it, sorry."))

        with pytest.raises(MalformedOutputError) as exc_info:
            await analyzer.analyze("transcript", "summary")

        assert exc_info.value.raw_response == "I could not do it, sorry."
        assert analyzer.state == AnalysisState.ERROR

    @pytest.mark.asyncio
    async def test_analyzer_can_run_again_after_error(self):
        gateway = mock_gateway("not json")
        analyzer = OralEvidenceAnalyzer(gateway)
        with pytest.raises(MalformedOutputError):
            await analyzer.analyze("transcript", "summary")

        gateway.call_ai.return_value = "{}"
        await analyzer.analyze("transcript", "summary")
        assert analyzer.state == AnalysisState.DONE

    @pytest.mark.asyncio
    async def test_consistency_warnings_are_logged(self, caplog):
        data = dict(ANALYSIS, sintesesPorTema=[{"tema": "Danos morais"}])
        await OralEvidenceAnalyzer(mock_gateway(json.dumps(data))).analyze("t", "s")
        assert "Topics without analysis: Danos morais" in caplog.text

    @pytest.mark.asyncio
    async def test_diagnostics_failure_does_not_fail_analysis(self, caplog):
        analyzer = OralEvidenceAnalyzer(mock_gateway(json.dumps(ANALYSIS)))

        with patch('testimony_analyzer.analysis.pipeline.check_consistency', side_effect=TypeError("bad field")):
            result = await analyzer.analyze("transcript", "summary")

        assert result.processo["numero"] == "0001234-56.2024.5.02.0001"
        assert analyzer.state == AnalysisState.DONE
        assert "Analysis diagnostics failed" in caplog.text


class TestAnalysisSession:
    """Test the caller-facing session over a mocked HTTP transport."""

    def make_session(self, handler, events=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        async def no_sleep(seconds):
            return None

        on_progress = (lambda p, m: events.append(p)) if events is not None else None
        return AnalysisSession(make_settings(), client=client, on_progress=on_progress, sleep=no_sleep)

    @pytest.mark.asyncio
    async def test_end_to_end(self):
        events = []
        session = self.make_session(lambda request: httpx.Response(200, json=claude_body(json.dumps(ANALYSIS))), events)

        result = await session.analyze("transcript", "summary")

        assert result is not None
        assert session.result is result
        assert session.error is None
        assert session.is_analyzing is False
        assert session.progress == 100
        assert session.progress_message == "Done!"
        assert session.state == AnalysisState.DONE
        assert events[-1] == 100
        assert session.usage.input == 1000
        assert session.usage.output == 400
        assert session.usage.cache_read == 200
        assert session.usage.request_count == 1

    @pytest.mark.asyncio
    async def test_failure_sets_error_instead_of_raising(self):
        session = self.make_session(lambda request: httpx.Response(503, json={}))

        result = await session.analyze("transcript", "summary")

        assert result is None
        assert "unavailable after 3 attempts" in session.error
        assert session.is_analyzing is False
        assert session.usage.request_count == 0

    @pytest.mark.asyncio
    async def test_blank_transcript_error(self):
        calls = []
        session = self.make_session(lambda request: calls.append(request) or httpx.Response(200, json={}))

        assert await session.analyze("", "summary") is None
        assert session.error == "A transcript is required"
        assert calls == []

    @pytest.mark.asyncio
    async def test_error_cleared_on_next_run(self):
        bodies = [httpx.Response(200, json=claude_body("garbage")), httpx.Response(200, json=claude_body("{}"))]
        session = self.make_session(lambda request: bodies.pop(0))

        assert await session.analyze("transcript", "summary") is None
        assert session.error is not None

        assert await session.analyze("transcript", "summary") is not None
        assert session.error is None
        assert session.usage.request_count == 2

    @pytest.mark.asyncio
    async def test_rejects_overlapping_runs(self, caplog):
        release = asyncio.Event()

        async def slow_call(messages, options):
            await release.wait()
            return "{}"

        session = self.make_session(lambda request: httpx.Response(200, json={}))
        session.gateway.call_ai = slow_call

        first = asyncio.ensure_future(session.analyze("transcript", "summary"))
        await asyncio.sleep(0)
        assert session.is_analyzing is True

        second = await session.analyze("transcript", "summary")
        assert second is None
        assert session.error is None
        assert "already in progress" in caplog.text

        release.set()
        result = await first
        assert result is not None
        assert session.result is result
        assert session.error is None
        assert session.is_analyzing is False

    @pytest.mark.asyncio
    async def test_failed_run_clears_previous_result(self):
        bodies = [httpx.Response(200, json=claude_body(json.dumps(ANALYSIS))), httpx.Response(200, json=claude_body("garbage"))]
        session = self.make_session(lambda request: bodies.pop(0))

        assert await session.analyze("transcript", "summary") is not None
        assert session.result is not None

        assert await session.analyze("transcript", "summary") is None
        assert session.result is None
        assert session.error is not None

    @pytest.mark.asyncio
    async def test_wrongly_typed_fields_still_produce_a_result(self):
        reply = {
            "depoentes": [{"id": ["d1"], "nome": 7}, {"id": "d2", "nome": 8, "qualificacao": ["autor"]}],
            "sinteses": [{"deponenteId": "d2", "conteudo": 3}],
            "sintesesPorTema": [{"tema": 5}],
            "analises": [{"titulo": 12, "conclusao": None}]
        }
        session = self.make_session(lambda request: httpx.Response(200, json=claude_body(json.dumps(reply))))

        result = await session.analyze("transcript", "summary")

        assert result is not None
        assert session.error is None
        assert session.state == AnalysisState.DONE
        assert result.sinteses_condensadas == [
            {"deponente": "DEPOENTE", "qualificacao": "desconhecido", "textoCorrente": ""}
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error(self):
        session = self.make_session(lambda request: httpx.Response(200, json={}))
        session.gateway.call_ai = AsyncMock(side_effect=RuntimeError("socket exploded"))

        result = await session.analyze("transcript", "summary")

        assert result is None
        assert session.error == "socket exploded"
        assert session.result is None
        assert session.is_analyzing is False
        assert session.state == AnalysisState.ERROR

    @pytest.mark.asyncio
    async def test_context_manager_closes_gateway(self):
        session = self.make_session(lambda request: httpx.Response(200, json={}))
        session.gateway.close = AsyncMock()

        async with session:
            pass

        session.gateway.close.assert_awaited_once()


class TestAnalysisState:
    """Test the analysis lifecycle states."""

    def test_terminal_states(self):
        assert AnalysisState.DONE.is_terminal
        assert AnalysisState.ERROR.is_terminal
        assert not AnalysisState.SENT.is_terminal
        assert not AnalysisState.IDLE.is_terminal
