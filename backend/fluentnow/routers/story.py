from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..context import AppContext, get_context
from ..schemas import Sentence

router = APIRouter(prefix="/story", tags=["story"])


class GenerateStoryRequest(BaseModel):
	theme: Optional[str] = None
	custom_theme: Optional[str] = None
	level: Optional[str] = None


class StoryResponse(BaseModel):
	passage: str
	sentences: List[Sentence]
	source_language: str
	target_language: str
	level: str


class LanguagesRequest(BaseModel):
	source_language: str
	target_language: str


def _languages(ctx: AppContext) -> dict:
	return {
		"source_language": ctx.session.source_language,
		"target_language": ctx.session.target_language,
		"state": ctx.session.state.value,
	}


@router.post("", response_model=StoryResponse)
async def generate_story(req: GenerateStoryRequest, ctx: AppContext = Depends(get_context)):
	if req.level:
		ctx.pipeline.set_level(req.level)
	theme = req.theme or ctx.preferences.theme
	sentences = await ctx.pipeline.generate_passage(theme, req.custom_theme)
	ctx.remember_session_preferences(theme)
	return StoryResponse(
		passage=ctx.session.passage_text,
		sentences=sentences,
		source_language=ctx.session.source_language,
		target_language=ctx.session.target_language,
		level=ctx.session.difficulty_level,
	)


@router.put("/languages")
async def set_languages(req: LanguagesRequest, ctx: AppContext = Depends(get_context)):
	ctx.pipeline.set_languages(req.source_language, req.target_language)
	ctx.remember_session_preferences()
	return _languages(ctx)


@router.post("/languages/swap")
async def swap_languages(ctx: AppContext = Depends(get_context)):
	ctx.pipeline.swap_languages()
	ctx.remember_session_preferences()
	return _languages(ctx)
