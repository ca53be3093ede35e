from fastapi import APIRouter, Depends, HTTPException

from homehero.auth import DEMO_PASSWORD, create_access_token, require_authenticated_user
from homehero.models import AuthLoginRequest, AuthLoginResponse, AuthMeResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AuthLoginResponse)
def login(payload: AuthLoginRequest):
    email = payload.email.strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="email is required")
    if payload.password != DEMO_PASSWORD:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token, expires_at = create_access_token(email=email)
    return AuthLoginResponse(access_token=token, email=email, expires_at=expires_at)


@router.get("/me", response_model=AuthMeResponse)
def me(email: str = Depends(require_authenticated_user)):
    return AuthMeResponse(email=email)
