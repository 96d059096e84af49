from __future__ import annotations
from fastapi import APIRouter, Depends
from src.app.deps import CurrentUser, require_user

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.get("/me", response_model=CurrentUser)
def me(user: CurrentUser = Depends(require_user)):
    return user
