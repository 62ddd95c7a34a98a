"""HTTP API routes for question answering and AI writing helpers."""

from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends

from ...models.assistant import (
    AnswerResponse,
    ContentRequest,
    ContentResponse,
    LinkSuggestion,
    QuestionRequest,
    SummaryResponse,
    TagsResponse,
)
from ...services.assistant import AnswerResult, AssistantService
from ..middleware import get_assistant_service

router = APIRouter()

Assistant = Annotated[AssistantService, Depends(get_assistant_service)]


def _answer_response(result: AnswerResult) -> AnswerResponse:
    return AnswerResponse(answer=result.answer, source_notes=result.source_notes)


@router.post("/api/chat", response_model=AnswerResponse)
async def ask_question(request: QuestionRequest, assistant: Assistant):
    """
    Answer a question from the most relevant notes.

    LLM and search failures surface as a 500 with a generic message.
    """
    return _answer_response(await assistant.answer_question(request.question))


@router.post("/api/assistant/chat", response_model=AnswerResponse)
async def chat(request: QuestionRequest, assistant: Assistant):
    """Chat-widget variant: LLM failures come back as an apology answer."""
    return _answer_response(await assistant.chat(request.question))


@router.get("/api/ai/suggest-links/{note_id}", response_model=List[LinkSuggestion])
async def suggest_links(note_id: str, assistant: Assistant):
    return await assistant.suggest_links(note_id)


@router.post("/api/ai/tags", response_model=TagsResponse)
async def generate_tags(request: ContentRequest, assistant: Assistant):
    return TagsResponse(tags=await assistant.generate_tags(request.content))


@router.post("/api/ai/improve", response_model=ContentResponse)
async def improve_writing(request: ContentRequest, assistant: Assistant):
    return ContentResponse(content=await assistant.improve_writing(request.content))


@router.post("/api/ai/summary", response_model=SummaryResponse)
async def generate_summary(request: ContentRequest, assistant: Assistant):
    return SummaryResponse(summary=await assistant.generate_summary(request.content))


__all__ = ["router"]
