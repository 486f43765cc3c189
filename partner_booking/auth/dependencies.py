import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from partner_booking.auth import jwt_handler
from partner_booking.database import get_db
from partner_booking.models.user import User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_booking_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked.")
    if not current_user.is_confirmed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account email is not confirmed.")
    return current_user


def is_partner_staff(user: User, partner_id: int) -> bool:
    if user.role == "admin":
        return True
    return user.role == "partner" and user.partner_id == partner_id


def ensure_partner_staff(user: User, partner_id: int) -> None:
    if not is_partner_staff(user, partner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff of this partner can manage its schedule.",
        )
