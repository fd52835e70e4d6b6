from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import httpx

from varianceqa.analysis.gemini import GeminiClient
from varianceqa.analysis.prompts import build_extraction_prompt, build_query_prompt, extraction_generation_config
from varianceqa.core.config import AppConfig
from varianceqa.core.errors import (
    BusyError,
    ConfigError,
    FormatError,
    NotReadyError,
    ValidationError,
    VarianceQAError,
)
from varianceqa.core.samples import SAMPLE_TRANSCRIPT
from varianceqa.core.state import FormState, VarianceItem
from varianceqa.identity.bootstrap import bootstrap_identity
from varianceqa.identity.provider import IdentityProvider, identity_provider_factory

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_MESSAGE = "Please paste a transcript first."
NOT_READY_MESSAGE = "Please wait… initializing."
MISSING_KEY_MESSAGE = "Missing Gemini API key. Set VARIANCEQA_GEMINI_API_KEY on the server."
EMPTY_QUERY_PROMPT = "Please enter a query."
NO_COMMENTARY_PROMPT = "Please process a transcript first."
NO_ANSWER_TEXT = "No answer returned."

PROCESSING_STATUS = "Processing transcript…"
IDLE_STATUS = "Paste a transcript and click “Process Transcript”."
PROCESSED_STATUS = "Transcript processed. Enter a question above."


def parse_commentary_payload(payload: Optional[str]) -> List[Any]:
    """Parse the extraction payload. Missing text counts as an empty array."""
    text = payload if payload else "[]"
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError(f"model returned invalid JSON: {exc.msg}") from exc
    if not isinstance(parsed, list):
        raise FormatError("model returned non-array")
    return parsed


class FormController:
    """Owns the state of one page session and drives the extraction and query cycles."""

    def __init__(
        self,
        session_id: str,
        cfg: AppConfig,
        *,
        generator: Optional[GeminiClient] = None,
        identity_provider: Optional[IdentityProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self.generator = generator or GeminiClient(cfg.gemini, transport=transport)
        self.identity_provider = identity_provider or identity_provider_factory(cfg.identity, transport=transport)
        self.state = FormState(
            session_id=session_id,
            app_id=cfg.app_id,
            transcript=SAMPLE_TRANSCRIPT if cfg.prefill_sample else "",
        )
        self._bootstrap_started = False
        self._closed = False

    # --- bootstrap ---

    async def bootstrap(self) -> FormState:
        if self._bootstrap_started:
            return self.state
        self._bootstrap_started = True
        try:
            result = await bootstrap_identity(
                self.identity_provider,
                timeout_s=self.cfg.identity.bootstrap_timeout_s,
            )
            self.state.identity = result.identity
            if result.warning:
                self.state.warning = result.warning
            logger.info(
                "Session identity ready (session_id=%s source=%s)",
                self.state.session_id,
                result.identity.source,
            )
        finally:
            self.state.identity_ready = True
        return self.state

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.identity_provider.close()

    # --- form edits ---

    def set_transcript(self, text: str) -> FormState:
        if self.state.extraction_in_progress:
            raise BusyError("transcript is locked while it is being processed")
        self.state.transcript = text
        return self.state

    def set_query(self, text: str) -> FormState:
        self.state.query = text
        return self.state

    def load_sample(self) -> FormState:
        return self.set_transcript(SAMPLE_TRANSCRIPT)

    def reset(self) -> FormState:
        if self.state.busy:
            raise BusyError()
        self.state.transcript = ""
        self.state.commentary = None
        self.state.query = ""
        self.state.result = ""
        self.state.error = ""
        return self.state

    def commentary_items(self) -> List[VarianceItem]:
        return [VarianceItem.from_raw(item) for item in (self.state.commentary or [])]

    def status_message(self) -> str:
        state = self.state
        if state.extraction_in_progress:
            return PROCESSING_STATUS
        if state.result or state.error:
            return ""
        if state.commentary is None:
            return IDLE_STATUS
        return PROCESSED_STATUS

    # --- extraction cycle ---

    async def run_extraction(self) -> List[Any]:
        """Extract StructuredCommentary from the current transcript.

        Raises the VarianceQAError subclass describing the failure. The stored
        commentary is only replaced after a fully parsed array is in hand.
        """
        if self.state.busy:
            raise BusyError()
        transcript = self.state.transcript
        if not transcript.strip():
            raise ValidationError("no transcript")
        if not self.state.identity_ready:
            raise NotReadyError()
        if not self.generator.configured:
            raise ConfigError()

        self.state.extraction_in_progress = True
        try:
            payload = await self.generator.generate_text(
                build_extraction_prompt(transcript),
                generation_config=extraction_generation_config(),
            )
            parsed = parse_commentary_payload(payload)
            self.state.commentary = parsed
            self.state.result = ""
            self.state.error = ""
            logger.info("Transcript processed (session_id=%s items=%s)", self.state.session_id, len(parsed))
            return parsed
        finally:
            self.state.extraction_in_progress = False

    async def process_transcript(self) -> FormState:
        if self.state.busy:
            raise BusyError()
        self.state.result = ""
        self.state.error = ""
        try:
            await self.run_extraction()
        except ValidationError:
            self.state.error = EMPTY_TRANSCRIPT_MESSAGE
        except NotReadyError:
            self.state.error = NOT_READY_MESSAGE
        except ConfigError:
            self.state.error = MISSING_KEY_MESSAGE
        except VarianceQAError as exc:
            logger.warning("Error processing transcript (session_id=%s): %s", self.state.session_id, exc.message)
            self.state.error = f"Failed to process the transcript: {exc.message}"
        return self.state

    # --- query cycle ---

    async def run_query(self, query: str) -> str:
        if self.state.busy:
            raise BusyError()
        if self.state.commentary is None:
            raise ValidationError("no structured commentary")
        if not self.generator.configured:
            raise ConfigError()

        self.state.query_in_progress = True
        try:
            text = await self.generator.generate_text(build_query_prompt(self.state.commentary, query))
            return text or ""
        finally:
            self.state.query_in_progress = False

    async def ask(self) -> FormState:
        if self.state.busy:
            raise BusyError()
        self.state.error = ""
        self.state.result = ""

        query = self.state.query
        if not query.strip():
            self.state.result = EMPTY_QUERY_PROMPT
            return self.state
        if self.state.commentary is None:
            self.state.result = NO_COMMENTARY_PROMPT
            return self.state

        try:
            answer = await self.run_query(query)
        except ConfigError:
            self.state.error = MISSING_KEY_MESSAGE
        except VarianceQAError as exc:
            logger.warning("Error processing query (session_id=%s): %s", self.state.session_id, exc.message)
            self.state.error = f"Failed to get a response: {exc.message}"
        else:
            self.state.result = answer or NO_ANSWER_TEXT
        return self.state
