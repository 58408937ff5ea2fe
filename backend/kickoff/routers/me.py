import time

from fastapi import APIRouter, Depends, HTTPException

from ..auth import decode_token

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(claims: dict | None = Depends(decode_token)) -> dict:
    """Who the bearer token belongs to, for the admin console."""
    if not claims:
        raise HTTPException(status_code=401, detail="Not authenticated")

    exp = int(claims.get("exp") or 0)
    return {
        "role": claims.get("role"),
        "sub": claims.get("sub"),
        "iat": claims.get("iat"),
        "exp": exp,
        "expires_in": max(0, exp - int(time.time())),
    }
