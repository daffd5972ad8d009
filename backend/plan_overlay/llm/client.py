"""LangChain ChatAnthropic wrapper for the three vision tasks."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

import anthropic

from plan_overlay.config import Settings
from plan_overlay.errors import (
    CollaboratorUnavailable,
    ExtractionError,
    InvalidAdjustment,
    PlanOverlayError,
    RateLimited,
    TransientNetworkError,
)
from plan_overlay.llm.model_router import get_model_for_task
from plan_overlay.llm.parsing import (
    extract_bounds_from_text,
    parse_adjustment,
    parse_deep_refinement,
    parse_extraction,
)
from plan_overlay.llm.prompts import (
    deep_refinement_message,
    deep_refinement_system_prompt,
    extraction_message,
    get_prompt_template,
    refinement_message,
)
from plan_overlay.llm.retry import with_backoff
from plan_overlay.llm.stream import IncrementalJsonParser
from plan_overlay.models.geo import Bounds
from plan_overlay.models.plan import ExtractedPlanData, PlanDocument
from plan_overlay.models.refinement import DeepRefinementResponse, RefinementAdjustment
from plan_overlay.utils.data_urls import image_media_type, is_pdf, split_data_url

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

    from plan_overlay.engine.context import PipelineSession

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str, int], "BaseChatModel"]


def _image_block(media_type: str, b64: str) -> dict[str, Any]:
    return {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": b64}}


def _document_block(data_url: str) -> dict[str, Any]:
    """PDFs go in as Anthropic document blocks, anything else as an image."""
    media_type, b64 = split_data_url(data_url)
    if is_pdf(media_type):
        return {"type": "document", "source": {"type": "base64", "media_type": media_type, "data": b64}}
    return _image_block(media_type, b64)


def _bytes_block(raw: bytes) -> dict[str, Any]:
    return _image_block(image_media_type(raw), base64.b64encode(raw).decode("ascii"))


def _chunk_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block.get("text", "") for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


class PlanVisionClient:
    """Extraction, visual refinement and deep refinement against Anthropic vision models."""

    def __init__(self, settings: Settings, chat_model_factory: ChatModelFactory | None = None) -> None:
        self.settings = settings
        self._chat_model_factory = chat_model_factory or self._anthropic_chat_model

    def _anthropic_chat_model(self, model_id: str, max_tokens: int) -> BaseChatModel:
        if not self.settings.anthropic_api_key:
            raise CollaboratorUnavailable("LLM not configured, set ANTHROPIC_API_KEY in .env")

        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=model_id,
            api_key=self.settings.anthropic_api_key,
            max_tokens=max_tokens,
            max_retries=0,
            timeout=self.settings.collaborator_timeout_seconds,
        )

    async def _stream_text(self, llm: BaseChatModel, messages: list) -> str:
        """Stream the answer until its first complete JSON object, or the end.

        An interrupted stream that already produced text is used as-is.
        """
        parser = IncrementalJsonParser()
        text = ""
        error: PlanOverlayError | None = None
        try:
            async with aclosing(llm.astream(messages)) as chunks:
                async for chunk in chunks:
                    piece = _chunk_text(chunk.content)
                    text += piece
                    if parser.feed(piece):
                        break
        except anthropic.RateLimitError as e:
            error = RateLimited(f"Anthropic rate limit: {e}")
        except (anthropic.APIConnectionError, anthropic.InternalServerError) as e:
            error = TransientNetworkError(f"Anthropic unavailable: {e}")
        except anthropic.APIStatusError as e:
            raise CollaboratorUnavailable(f"Anthropic API error {e.status_code}: {e.message}") from e

        if error is not None:
            if not text:
                raise error
            logger.warning("Model stream interrupted (%s), continuing with %d chars", error, len(text))
        return text

    async def _complete(self, task: str, messages: list, max_tokens: int = 4096) -> str:
        model_id = get_model_for_task(task, self.settings)
        llm = self._chat_model_factory(model_id, max_tokens)
        logger.info("%s: calling %s", task, model_id)
        text = await with_backoff(
            lambda: self._stream_text(llm, messages),
            attempts=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay_seconds,
            label=f"{task} model call",
        )
        logger.debug("%s response (%d chars): %.500s", task, len(text), text)
        return text

    async def extract_location_data(self, document: PlanDocument) -> ExtractedPlanData:
        from langchain_core.messages import HumanMessage, SystemMessage

        messages = [
            SystemMessage(content=get_prompt_template("extract")),
            HumanMessage(content=[
                {"type": "text", "text": extraction_message(document.filename)},
                _document_block(document.data_url),
            ]),
        ]
        try:
            text = await self._complete("extract", messages)
        except (TransientNetworkError, CollaboratorUnavailable) as e:
            raise ExtractionError(f"Extraction call failed: {e}") from e
        extracted = parse_extraction(text)
        logger.info(
            "Extracted %s: %d roads, %d intersections",
            document.filename, len(extracted.roads), len(extracted.intersections),
        )
        return extracted

    async def request_visual_refinement(
        self,
        screenshot: bytes,
        document: PlanDocument,
        current_bounds: Bounds,
        session: PipelineSession,
    ) -> RefinementAdjustment | None:
        """One refinement turn. Earlier turns of this session are replayed as context.

        Raises :class:`InvalidAdjustment` when neither an adjustment nor
        free-text bounds can be read from the answer.
        """
        from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

        from plan_overlay.engine.adjustment import adjustment_between

        user_text = refinement_message(current_bounds)
        messages: list = [SystemMessage(content=get_prompt_template("refine"))]
        for turn in session.history:
            if turn.role == "user":
                messages.append(HumanMessage(content=turn.content))
            elif turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
        messages.append(HumanMessage(content=[
            {"type": "text", "text": user_text},
            _bytes_block(screenshot),
            _document_block(document.data_url),
        ]))

        text = await self._complete("refine", messages)
        session.record_turn("user", user_text)
        session.record_turn("assistant", text)

        try:
            return parse_adjustment(text)
        except InvalidAdjustment:
            bounds = extract_bounds_from_text(text)
            if bounds is None:
                raise
            logger.info("No JSON adjustment, using bounds quoted in the answer")
            return adjustment_between(current_bounds, bounds, reasoning="Bounds read from free-text answer")

    async def request_deep_refinement(
        self,
        drawing: bytes,
        terrain: bytes,
        current: Bounds,
        original: Bounds,
        iteration: int,
        max_shift_meters: float,
    ) -> DeepRefinementResponse:
        from langchain_core.messages import HumanMessage, SystemMessage

        messages = [
            SystemMessage(content=deep_refinement_system_prompt(max_shift_meters)),
            HumanMessage(content=[
                {"type": "text", "text": deep_refinement_message(current, original, iteration)},
                _bytes_block(drawing),
                _bytes_block(terrain),
            ]),
        ]
        text = await self._complete("deep_refine", messages)
        return parse_deep_refinement(text)
