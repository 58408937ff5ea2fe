import hmac
import time

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

bearer = HTTPBearer(auto_error=False)

TOKEN_TTL_SEC = 60 * 60 * 12


def create_token(request: Request, role: str = "admin") -> str:
    if role != "admin":
        raise ValueError("invalid role")

    s = request.app.state.settings
    now = int(time.time())
    payload = {"sub": "admin", "role": role, "iat": now, "exp": now + TOKEN_TTL_SEC}
    return jwt.encode(payload, s.jwt_secret, algorithm="HS256")


def password_ok(request: Request, pw: str) -> bool:
    s = request.app.state.settings
    return hmac.compare_digest(str(pw or ""), str(s.admin_password))


def decode_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> dict | None:
    if creds is None:
        return None
    s = request.app.state.settings
    try:
        return jwt.decode(creds.credentials, s.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        return None


def require_admin(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str:
    if creds is None:
        raise HTTPException(status_code=401, detail="Missing token")

    s = request.app.state.settings
    try:
        payload = jwt.decode(creds.credentials, s.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if payload.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Insufficient privileges")
    return "admin"
