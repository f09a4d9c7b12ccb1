from fastapi import APIRouter, Depends

from ..context import AppContext, get_context
from ..schemas import Preferences

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=Preferences)
async def get_preferences(ctx: AppContext = Depends(get_context)):
	return ctx.preferences


@router.put("", response_model=Preferences)
async def put_preferences(req: Preferences, ctx: AppContext = Depends(get_context)):
	return ctx.update_preferences(req)
