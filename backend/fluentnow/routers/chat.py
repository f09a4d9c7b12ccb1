from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..context import AppContext, get_context
from ..schemas import ChatContext, ChatTurn

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
	message: str


@router.post("")
async def send(req: ChatRequest, ctx: AppContext = Depends(get_context)):
	reply = await ctx.assistant.send(req.message)
	return {"reply": reply.model_dump() if reply is not None else None}


@router.get("/history", response_model=List[ChatTurn])
async def history(ctx: AppContext = Depends(get_context)):
	return ctx.assistant.history


@router.delete("/history")
async def clear(ctx: AppContext = Depends(get_context)):
	ctx.assistant.clear()
	return {"cleared": True}


@router.get("/welcome", response_model=ChatTurn)
async def welcome(ctx: AppContext = Depends(get_context)):
	return ctx.assistant.welcome()


@router.get("/context", response_model=ChatContext)
async def context(ctx: AppContext = Depends(get_context)):
	return ctx.assistant.snapshot_context()
