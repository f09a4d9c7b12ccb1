from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..context import AppContext, get_context
from ..schemas import CredentialCheck

router = APIRouter(prefix="/credentials", tags=["credentials"])


class ValidateRequest(BaseModel):
	api_key: str


class ModelRequest(BaseModel):
	model: str


@router.post("/validate", response_model=CredentialCheck)
async def validate(req: ValidateRequest, ctx: AppContext = Depends(get_context)):
	return await ctx.validate_and_install_credential(req.api_key)


@router.put("/model")
async def set_model(req: ModelRequest, ctx: AppContext = Depends(get_context)):
	ctx.gateway.set_model(req.model)
	return {"model": ctx.gateway.model}


@router.delete("")
async def forget(ctx: AppContext = Depends(get_context)):
	await ctx.gateway.clear_credential()
	ctx.store.clear_credential()
	return {"configured": ctx.gateway.configured}
