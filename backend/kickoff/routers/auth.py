from fastapi import APIRouter, HTTPException, Request

from ..auth import create_token, password_ok
from ..schemas import LoginBody

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login")
def login(request: Request, body: LoginBody) -> dict:
    if not password_ok(request, body.password):
        raise HTTPException(status_code=401, detail="Wrong password")

    token = create_token(request, role="admin")
    return {"token": token, "role": "admin"}
