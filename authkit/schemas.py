from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr


NameStr = constr(strip_whitespace=True, max_length=100)
OtpType = Literal["email", "sms", "whatsapp"]
OtpPurposeStr = Literal["login", "register", "reset_password", "verify"]
RegionStr = constr(strip_whitespace=True, min_length=2, max_length=2, pattern=r"^[A-Za-z]{2}$")
CodeStr = constr(strip_whitespace=True, min_length=1, max_length=10, pattern=r"^\d+$")


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None
    phone: Optional[str] = None
    default_region: Optional[RegionStr] = None


class UserLogin(BaseModel):
    identifier: constr(strip_whitespace=True, min_length=1)
    password: str = Field(min_length=1)
    default_region: Optional[RegionStr] = None


class UserOut(BaseModel):
    id: int
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_verified: bool
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class MessageResponse(BaseModel):
    message: str


class RequestOtpRequest(BaseModel):
    contact: constr(strip_whitespace=True, min_length=1)
    type: Optional[OtpType] = None
    purpose: OtpPurposeStr = "login"
    default_region: Optional[RegionStr] = None


class VerifyOtpRequest(RequestOtpRequest):
    code: CodeStr


class ResetTokenResponse(BaseModel):
    reset_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: constr(strip_whitespace=True, min_length=1)
    new_password: str = Field(min_length=1, max_length=128)


class VerifyEmailRequest(BaseModel):
    token: constr(strip_whitespace=True, min_length=1)


class ClaimsOut(BaseModel):
    user_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_verified: bool
    iat: Optional[int] = None
    exp: Optional[int] = None
