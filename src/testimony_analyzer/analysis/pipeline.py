"""Oral-evidence analysis using the AI provider gateway"""
import logging
from typing import Optional

import httpx

from ..llm.gateway import AIGateway, SleepFunc
from ..llm.models import CallOptions, LLMAPIError, LLMMessage, MessageRole, TokenUsage
from ..llm.utils import get_max_output_tokens
from ..utils.config import ProviderSettings
from .extraction import normalize_result, parse_response
from .helpers import check_consistency, find_confissoes_for_tema, find_contradicoes_for_tema
from .models import (
    ALLOWED_TRANSITIONS, AnalysisError, AnalysisResult, AnalysisState,
    GenerationError, ValidationError
)
from .progress import ProgressCallback, ProgressTracker
from .prompts import ORAL_EVIDENCE_ANALYSIS_PROMPT, build_user_prompt
from .schema import validate_result

logger = logging.getLogger(__name__)


class OralEvidenceAnalyzer:
    """Turns a hearing transcript into a structured oral-evidence analysis"""

    def __init__(self, gateway: AIGateway, system_prompt: str = ORAL_EVIDENCE_ANALYSIS_PROMPT):
        """
        Initialize the analyzer.

        Args:
            gateway: Provider gateway used for the model call
            system_prompt: Domain system prompt sent with every analysis
        """
        self.gateway = gateway
        self.system_prompt = system_prompt
        self.state = AnalysisState.IDLE

    def _transition(self, new_state: AnalysisState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid analysis state transition: {self.state.value} -> {new_state.value}")
        logger.debug(f"Analysis state: {self.state.value} -> {new_state.value}")
        self.state = new_state

    async def analyze(
        self,
        transcript: str,
        case_summary: str,
        extra_instructions: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> AnalysisResult:
        """
        Analyze a hearing transcript.

        Args:
            transcript: Full hearing transcript
            case_summary: Summary of the case (parties, claims, defence)
            extra_instructions: Optional user instructions appended to the prompt
            on_progress: Receives (percent, message) at each checkpoint

        Returns:
            Normalized AnalysisResult

        Raises:
            ValidationError: If the transcript is blank (no network call is made)
            GenerationError: If the gateway failed to produce a response
            MalformedOutputError: If the response is not parseable JSON
        """
        if not transcript or not transcript.strip():
            raise ValidationError("A transcript is required")

        self._transition(AnalysisState.PREPARING)
        tracker = ProgressTracker(on_progress)

        try:
            tracker.update(5)
            settings = self.gateway.settings
            provider = self.gateway.resolve_provider(settings.provider)
            model = settings.model_for(provider.value)
            max_tokens = get_max_output_tokens(model)

            messages = [LLMMessage(
                role=MessageRole.USER,
                content=build_user_prompt(transcript, case_summary, extra_instructions)
            )]
            options = CallOptions(max_tokens=max_tokens, system_prompt=self.system_prompt)
            logger.info(f"Starting analysis: provider={provider.value}, model={model}, max_tokens={max_tokens}")

            self._transition(AnalysisState.SENT)
            tracker.update(10)
            tracker.update(30)
            try:
                raw_response = await self.gateway.call_ai(messages, options)
            except LLMAPIError as e:
                raise GenerationError(str(e), status_code=e.status_code) from e

            self._transition(AnalysisState.PROCESSING)
            logger.info(f"Model response received, length: {len(raw_response)}")
            tracker.update(50)

            data = parse_response(raw_response)
            tracker.update(65)

            result = normalize_result(data)
            tracker.update(85)
            self._log_diagnostics(result)

            tracker.finish()
            self._transition(AnalysisState.DONE)
            return result

        except Exception:
            if not self.state.is_terminal:
                self._transition(AnalysisState.ERROR)
            raise

    def _log_diagnostics(self, result: AnalysisResult) -> None:
        """Log schema and consistency problems without altering the result."""
        try:
            self._check_result(result)
        except Exception:
            logger.exception("Analysis diagnostics failed; returning the result unchecked")

    def _check_result(self, result: AnalysisResult) -> None:
        is_valid, errors = validate_result(result.to_dict())
        if not is_valid:
            logger.warning(f"Analysis deviates from schema in {len(errors)} place(s): {errors[:5]}")

        _, warnings = check_consistency(result)
        for warning in warnings:
            logger.warning(f"Consistency check: {warning}")

        for analise in result.analises:
            if not isinstance(analise, dict):
                continue
            titulo = analise.get("titulo")
            confissoes = find_confissoes_for_tema(result.confissoes, titulo)
            contradicoes = find_contradicoes_for_tema(result.contradicoes, titulo)
            logger.debug(
                f"Topic '{titulo}': {len(confissoes)} admission(s), {len(contradicoes)} contradiction(s)"
            )

        counts = result.section_counts()
        logger.info(f"Analysis normalized: {counts}")


class AnalysisSession:
    """
    Caller-facing analysis entry point.

    Never raises for analysis failures: ``analyze`` returns None and the
    message is placed in ``error``. Holds the cumulative token usage and
    refuses overlapping runs.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        client: Optional[httpx.AsyncClient] = None,
        on_progress: Optional[ProgressCallback] = None,
        usage: Optional[TokenUsage] = None,
        sleep: Optional[SleepFunc] = None
    ):
        self.usage = usage if usage is not None else TokenUsage()
        self.gateway = AIGateway(settings, client=client, on_usage=self.usage.add, sleep=sleep)
        self.analyzer = OralEvidenceAnalyzer(self.gateway)
        self.on_progress = on_progress

        self.is_analyzing = False
        self.progress = 0
        self.progress_message = ""
        self.error: Optional[str] = None
        self.result: Optional[AnalysisResult] = None

    @property
    def state(self) -> AnalysisState:
        return self.analyzer.state

    def _handle_progress(self, progress: int, message: str) -> None:
        self.progress = progress
        self.progress_message = message
        if self.on_progress:
            self.on_progress(progress, message)

    async def analyze(
        self,
        transcript: str,
        case_summary: str,
        extra_instructions: Optional[str] = None
    ) -> Optional[AnalysisResult]:
        """
        Run one analysis.

        A call made while another is running is rejected with None and
        leaves the running analysis's ``error`` and ``result`` untouched.

        Returns:
            The normalized result, or None with ``error`` set on failure
        """
        if self.is_analyzing:
            logger.warning("An analysis is already in progress; ignoring the new request")
            return None

        self.is_analyzing = True
        self.error = None
        self.result = None
        self.progress = 0
        self.progress_message = ""

        try:
            result = await self.analyzer.analyze(
                transcript,
                case_summary,
                extra_instructions=extra_instructions,
                on_progress=self._handle_progress
            )
        except AnalysisError as e:
            logger.error(f"Analysis failed: {e}")
            self.error = str(e)
            return None
        except Exception as e:
            logger.exception("Unexpected error during analysis")
            self.error = str(e) or type(e).__name__
            return None
        finally:
            self.is_analyzing = False

        self.result = result
        return result

    async def close(self) -> None:
        await self.gateway.close()

    async def __aenter__(self) -> "AnalysisSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
