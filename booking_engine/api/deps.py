from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from booking_engine.domain.exceptions import PaymentGatewayConfigError
from booking_engine.domain.value_objects import UserRole
from booking_engine.infrastructure.db.session import SessionLocal
from booking_engine.infrastructure.payments.gateway import (
    PaymentGateway,
    build_razorpay_gateway,
)


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: UserRole


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_current_identity(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Identity:
    """Identity is asserted upstream and forwarded as request headers."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized",
        )
    try:
        role = UserRole(x_user_role.strip().lower())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user role",
        ) from exc
    return Identity(user_id=x_user_id.strip(), role=role)


def require_roles(*allowed: UserRole):
    def checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role '{identity.role.value}' is not authorized to access this route",
            )
        return identity
    return checker


def get_payment_gateway() -> PaymentGateway:
    try:
        return build_razorpay_gateway()
    except PaymentGatewayConfigError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
