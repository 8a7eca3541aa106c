from typing import Optional

from pydantic import BaseModel, EmailStr


class ConnectAccountRequest(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None


class ConnectAccountStatus(BaseModel):
    id: str
    details_submitted: bool
    charges_enabled: bool
    payouts_enabled: bool


class ConnectAccountResponse(BaseModel):
    account: Optional[ConnectAccountStatus] = None


class UrlResponse(BaseModel):
    url: str
