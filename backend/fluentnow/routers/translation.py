from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..context import AppContext, get_context
from ..schemas import FeedbackResult, PassageFeedback, TranslationAttempt

router = APIRouter(prefix="/translation", tags=["translation"])


class TranslationRequest(BaseModel):
	translation: str


class SentenceTranslationsRequest(BaseModel):
	translations: Optional[List[str]] = None


class DraftRequest(BaseModel):
	text: str


class LessonRequest(BaseModel):
	attempts: Optional[List[TranslationAttempt]] = None


@router.get("/state")
async def get_state(ctx: AppContext = Depends(get_context)) -> Dict[str, Any]:
	session = ctx.session
	return {
		"state": session.state.value,
		"version": session.version,
		"source_language": session.source_language,
		"target_language": session.target_language,
		"level": session.difficulty_level,
		"sentences": [s.model_dump() for s in session.sentences],
		"sentence_translations": session.sentence_translations,
		"reference_translation": session.reference_translation,
		"feedback": session.feedback.model_dump(by_alias=True) if session.feedback is not None else None,
		"lesson": session.lesson.model_dump(by_alias=True) if session.lesson is not None else None,
	}


@router.put("/sentences/{index}")
async def update_draft(index: int, req: DraftRequest, ctx: AppContext = Depends(get_context)):
	ctx.pipeline.update_sentence_translation(index, req.text)
	return {"index": index, "text": ctx.session.sentence_translations[index]}


@router.post("", response_model=PassageFeedback)
async def submit_translation(req: TranslationRequest, ctx: AppContext = Depends(get_context)):
	return await ctx.pipeline.process_translation(req.translation)


@router.post("/sentences", response_model=FeedbackResult, response_model_by_alias=True)
async def submit_sentences(req: SentenceTranslationsRequest, ctx: AppContext = Depends(get_context)):
	return await ctx.pipeline.process_sentence_translations(req.translations)


@router.post("/lesson")
async def mini_lesson(req: LessonRequest, ctx: AppContext = Depends(get_context)):
	lesson = await ctx.pipeline.generate_sentence_mini_lesson(req.attempts)
	return {**lesson.model_dump(by_alias=True), "markdown": lesson.to_markdown()}
