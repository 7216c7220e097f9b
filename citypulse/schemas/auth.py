from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from citypulse.core.enums import AuthTab, GateState, View


# -------------------------
# Requests (INPUT)
# -------------------------

class SignInRequest(BaseModel):
    # plain str: a malformed address is reported inline, not as a 422
    email: str
    password: str


class SignUpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")


class TabRequest(BaseModel):
    tab: AuthTab


class ViewRequest(BaseModel):
    view: View


# -------------------------
# Responses (OUTPUT)
# -------------------------

class ErrorOut(BaseModel):
    kind: str
    message: str


class IdentityOut(BaseModel):
    uid: str
    email: str
    is_privileged: bool


class GateOut(BaseModel):
    state: GateState
    view: View
    restricted: bool
    auth_open: bool
    tab: AuthTab
    identity: Optional[IdentityOut] = None
    login_error: Optional[ErrorOut] = None
    signup_error: Optional[ErrorOut] = None
    signup_success: Optional[str] = None
    sign_up_email: str = ""
