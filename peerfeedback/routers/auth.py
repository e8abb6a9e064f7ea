from typing import Optional

from fastapi import APIRouter, Depends, Query

from peerfeedback.logic import Logic, get_logic
from peerfeedback.schemas.auth import AuthInfo
from peerfeedback.schemas.output import MessageOutput
from peerfeedback.utils.auth import UserInfo, get_current_user
from peerfeedback.utils.gatekeeper import verify_admin
from peerfeedback.utils.params import get_non_null_param

router = APIRouter(prefix="/webapi", tags=["auth"])


@router.get("/auth", response_model=AuthInfo)
def get_auth_info(user: UserInfo = Depends(get_current_user)):
    """
    Возвращает, кем является пользователь по токену (google id).
    """
    return AuthInfo(google_id=user.google_id, is_admin=user.is_admin, logged_in=user.is_logged_in)


@router.delete("/account", response_model=MessageOutput)
def delete_account(
    googleid: Optional[str] = Query(None),
    logic: Logic = Depends(get_logic),
    user: UserInfo = Depends(get_current_user),
):
    google_id = get_non_null_param("googleid", googleid)
    verify_admin(user)
    logic.delete_account_cascade(google_id)
    return MessageOutput(message="Account is successfully deleted.")
