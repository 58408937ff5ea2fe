from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, delete, select

from ..clock import utcnow
from ..errors import ConflictError, InvalidInputError, NotFoundError
from ..models import Coupon, CouponRedemption, Transaction, User

log = logging.getLogger(__name__)

COUPON_TYPES = ("coins", "theme")
CODE_MAX_LEN = 20


@dataclass(frozen=True)
class Redemption:
    code: str
    type: str
    value: int | str
    message: str


def normalize_code(code: str) -> str:
    c = (code or "").strip().upper()
    if not c:
        raise InvalidInputError("coupon code is required")
    if len(c) > CODE_MAX_LEN:
        raise InvalidInputError(f"coupon code is longer than {CODE_MAX_LEN} characters")
    return c


def _coin_value(value: str) -> int:
    try:
        coins = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"coin coupon value must be an integer, got {value!r}")
    if coins < 1:
        raise InvalidInputError("coin coupon value must be positive")
    return coins


def _naive_utc(ts: datetime | None) -> datetime | None:
    if ts is None or ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def create_coupon(
    s: Session,
    code: str,
    coupon_type: str,
    value: str,
    *,
    usage_limit: int = 1,
    expires_at: datetime | None = None,
) -> Coupon:
    code = normalize_code(code)
    if coupon_type not in COUPON_TYPES:
        raise InvalidInputError(f"coupon type must be one of {COUPON_TYPES}")
    value = str(value or "").strip()
    if coupon_type == "coins":
        _coin_value(value)
    elif not value:
        raise InvalidInputError("theme coupon needs a theme name")
    if isinstance(usage_limit, bool) or not isinstance(usage_limit, int) or usage_limit < 1:
        raise InvalidInputError("usage_limit must be a positive integer")

    if s.get(Coupon, code) is not None:
        raise ConflictError(f"Coupon code {code} already exists")

    coupon = Coupon(code=code, type=coupon_type, value=value, usage_limit=usage_limit, expires_at=_naive_utc(expires_at))
    s.add(coupon)
    s.commit()
    s.refresh(coupon)
    log.info("Created coupon %s (%s: %s, limit %s)", code, coupon_type, value, usage_limit)
    return coupon


def list_coupons(s: Session) -> list[Coupon]:
    return list(s.exec(select(Coupon).order_by(Coupon.created_at, Coupon.code)).all())


def delete_coupon(s: Session, code: str) -> None:
    """Remove a coupon together with its redemption history."""
    code = normalize_code(code)
    if s.get(Coupon, code) is None:
        raise NotFoundError(f"Coupon {code} not found")
    s.exec(delete(CouponRedemption).where(CouponRedemption.coupon_code == code))
    s.exec(delete(Coupon).where(Coupon.code == code))
    s.commit()
    log.info("Deleted coupon %s", code)


def redeem_coupon(s: Session, user: User, code: str, now: datetime | None = None) -> Redemption:
    """
    Apply a coupon to `user` once.

    Coin coupons add to the coin balance; theme coupons switch the active
    theme. Usage is counted with a conditional UPDATE, so the limit holds
    even when several wallets redeem the last use at the same time.
    """
    now = now or utcnow()
    code = normalize_code(code)

    coupon = s.get(Coupon, code)
    if coupon is None:
        raise NotFoundError("Invalid coupon code")
    if not coupon.is_active:
        raise ConflictError("Coupon is no longer active")
    if coupon.expires_at is not None and coupon.expires_at < now:
        raise ConflictError("Coupon has expired")
    if coupon.current_usage >= coupon.usage_limit:
        raise ConflictError("Coupon usage limit reached")

    done = s.exec(
        select(CouponRedemption).where(
            CouponRedemption.wallet_address == user.wallet_address,
            CouponRedemption.coupon_code == code,
        )
    ).first()
    if done is not None:
        raise ConflictError("You have already redeemed this coupon")

    claim = (
        update(Coupon)
        .where(Coupon.code == code, Coupon.current_usage < Coupon.usage_limit)
        .values(current_usage=Coupon.current_usage + 1)
        .execution_options(synchronize_session=False)
    )
    if s.exec(claim).rowcount != 1:
        s.rollback()
        raise ConflictError("Coupon usage limit reached")

    if coupon.type == "coins":
        value: int | str = _coin_value(coupon.value)
        user.coins = int(user.coins) + value
        s.add(
            Transaction(
                wallet_address=user.wallet_address,
                type="redeem",
                amount=value,
                currency="coins",
                description=f"Coupon {code}",
                created_at=now,
            )
        )
        message = f"Added {value} coins to your account!"
    else:
        value = coupon.value
        user.active_theme = value
        message = f"Unlocked {value} theme!"

    user.updated_at = now
    s.add(user)
    s.add(CouponRedemption(wallet_address=user.wallet_address, coupon_code=code, redeemed_at=now))
    s.commit()
    log.info("User %s redeemed coupon %s", user.wallet_address, code)
    return Redemption(code=code, type=coupon.type, value=value, message=message)
