from fastapi import APIRouter, Depends

from partner_booking.auth.dependencies import get_current_user
from partner_booking.models.user import User

router = APIRouter(tags=['auth'])


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "email": current_user.email,
        "role": current_user.role,
        "partner_id": current_user.partner_id,
        "is_confirmed": current_user.is_confirmed,
        "is_blocked": current_user.is_blocked,
    }
