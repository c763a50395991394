"""FastAPI routes for account sign-in."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.auth_controller import current_account, login, logout, signup

router = APIRouter(prefix="/auth", tags=["auth"])


class SignupPayload(BaseModel):
	email: str
	password: str
	display_name: str = ""


class LoginPayload(BaseModel):
	email: str
	password: str


@router.post("/signup")
async def signup_route(request: Request, payload: SignupPayload):
	try:
		return await signup(request, payload.email, payload.password, payload.display_name)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/login")
async def login_route(request: Request, payload: LoginPayload):
	try:
		return await login(request, payload.email, payload.password)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/logout")
async def logout_route(request: Request):
	try:
		return await logout(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/me")
async def me_route(request: Request):
	return await current_account(request)
