"""Question answering and writing assistance grounded in the user's notes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
import logging
from typing import List

from ..models.assistant import LinkSuggestion, SourceAttribution
from ..models.note import NoteDetail
from .llm import LLMService, LLMServiceError
from .note_store import NoteStore
from .prompt_loader import PromptLoader
from .retrieval import RetrievalService

logger = logging.getLogger(__name__)

CONTEXT_NOTES = 3
MAX_LINK_SUGGESTIONS = 5
LINK_SUGGESTION_REASON = "Similar content"
NO_ANSWER_FALLBACK = "I could not find a relevant answer in your notes."
CHAT_ERROR_ANSWER = (
    "I apologize, but I encountered an error while processing your request. Please try again."
)


@dataclass
class AnswerResult:
    answer: str
    source_notes: List[SourceAttribution] = field(default_factory=list)


def build_context(notes: List[NoteDetail]) -> str:
    return "\n\n".join(f'Note "{note.title}": {note.content}' for note in notes)


def parse_tags(raw: str) -> List[str]:
    """Read ``{"tags": [...]}`` from model output; anything malformed yields []."""
    try:
        payload = json.loads(raw or "{}")
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Model returned unparseable tags", extra={"error": str(e)})
        return []
    if not isinstance(payload, dict):
        logger.warning("Model returned tags in an unexpected shape")
        return []
    tags = payload.get("tags")
    if not isinstance(tags, list):
        return []
    return [tag for tag in tags if isinstance(tag, str)]


class AssistantService:
    """Retrieval-augmented answering plus single-shot writing helpers."""

    def __init__(
        self,
        retrieval: RetrievalService,
        store: NoteStore,
        llm: LLMService,
        prompts: PromptLoader | None = None,
    ) -> None:
        self.retrieval = retrieval
        self.store = store
        self.llm = llm
        self.prompts = prompts or PromptLoader()

    async def _fetch_notes(self, note_ids: List[str]) -> List[NoteDetail]:
        """Fetch notes concurrently, keep rank order, skip ids deleted meanwhile."""
        fetched = await asyncio.gather(*(self.store.get_note(note_id) for note_id in note_ids))
        return [note for note in fetched if note is not None]

    async def answer_question(self, question: str) -> AnswerResult:
        """
        Answer from the top-ranked notes.

        Raises:
            LLMServiceError: if the completion fails.
            IndexUnavailableError: if retrieval fails.
        """
        hits = await self.retrieval.search_notes(question)
        ranked_ids = list(dict.fromkeys(hit.id for hit in hits[:CONTEXT_NOTES]))
        notes = await self._fetch_notes(ranked_ids)

        messages = [
            {"role": "system", "content": self.prompts.load("assistant/answer_system.md")},
            {
                "role": "user",
                "content": self.prompts.load(
                    "assistant/answer_user.md",
                    {"context": build_context(notes), "question": question},
                ),
            },
        ]
        answer = await self.llm.complete(messages)

        logger.info(
            "Question answered",
            extra={"hits": len(hits), "context_notes": len(notes)},
        )
        return AnswerResult(
            answer=answer or NO_ANSWER_FALLBACK,
            source_notes=[SourceAttribution(id=note.id, title=note.title) for note in notes],
        )

    async def chat(self, question: str) -> AnswerResult:
        """Like ``answer_question`` but turns LLM failures into an apology."""
        try:
            return await self.answer_question(question)
        except LLMServiceError as e:
            logger.error(f"Chat completion failed: {e.message}")
            return AnswerResult(answer=CHAT_ERROR_ANSWER, source_notes=[])

    async def suggest_links(self, note_id: str) -> List[LinkSuggestion]:
        """
        Suggest notes to link, using the note's own content as the search query.

        This is a full-text overlap proxy; long notes make it an expensive,
        low-precision query.
        """
        note = await self.store.get_note(note_id)
        if note is None:
            return []

        hits = await self.retrieval.search_notes(note.content)
        return [
            LinkSuggestion(id=hit.id, title=hit.title, reason=LINK_SUGGESTION_REASON)
            for hit in hits
            if hit.id != note_id
        ][:MAX_LINK_SUGGESTIONS]

    async def generate_tags(self, content: str) -> List[str]:
        raw = await self._complete("tags", content, json_mode=True)
        return parse_tags(raw)

    async def improve_writing(self, content: str) -> str:
        improved = await self._complete("improve", content)
        return improved or content

    async def generate_summary(self, content: str) -> str:
        return await self._complete("summary", content)

    async def _complete(self, task: str, content: str, *, json_mode: bool = False) -> str:
        messages = [
            {"role": "system", "content": self.prompts.load(f"assistant/{task}_system.md")},
            {
                "role": "user",
                "content": self.prompts.load(f"assistant/{task}_user.md", {"content": content}),
            },
        ]
        return await self.llm.complete(messages, json_mode=json_mode)


__all__ = [
    "AssistantService",
    "AnswerResult",
    "build_context",
    "parse_tags",
    "NO_ANSWER_FALLBACK",
    "CHAT_ERROR_ANSWER",
    "LINK_SUGGESTION_REASON",
]
