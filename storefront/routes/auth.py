from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..security import Caller, UserCaller, create_token, get_caller
from ..services.users import authenticate, get_profile, profile, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterBody(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    address: Optional[str] = None


class LoginBody(BaseModel):
    email: str
    password: str


@router.post("/register", status_code=201)
def register(body: RegisterBody):
    user = register_user(body.model_dump())
    return {"token": create_token(UserCaller(id=user["id"])), "user": profile(user)}


@router.post("/login")
def login(body: LoginBody):
    caller, account = authenticate(body.email, body.password)
    return {"token": create_token(caller), "user": account}


@router.get("/me")
def me(caller: Caller = Depends(get_caller)):
    return get_profile(caller)
