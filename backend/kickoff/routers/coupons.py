from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import require_admin
from ..db import get_session
from ..schemas import CouponCreateBody, CouponRedeemBody
from ..services.coupons import create_coupon, delete_coupon, list_coupons, redeem_coupon
from ..services.wallet import get_user
from .common import http_error

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/redeem")
def redeem(body: CouponRedeemBody, s: Session = Depends(get_session)):
    try:
        user = get_user(s, body.wallet_address)
        res = redeem_coupon(s, user, body.code)
    except ValueError as e:
        raise http_error(e)
    return {"ok": True, "code": res.code, "type": res.type, "value": res.value, "message": res.message}


@router.get("", dependencies=[Depends(require_admin)])
def coupons(s: Session = Depends(get_session)):
    return list_coupons(s)


@router.post("", dependencies=[Depends(require_admin)])
def add_coupon(body: CouponCreateBody, s: Session = Depends(get_session)):
    try:
        return create_coupon(
            s,
            body.code,
            body.type,
            str(body.value),
            usage_limit=body.usage_limit,
            expires_at=body.expires_at,
        )
    except ValueError as e:
        raise http_error(e)


@router.delete("/{code}", dependencies=[Depends(require_admin)])
def remove_coupon(code: str, s: Session = Depends(get_session)):
    try:
        delete_coupon(s, code)
    except ValueError as e:
        raise http_error(e)
    return {"ok": True}
