from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# All fields are optional; app.core.validation reports missing or malformed
# values as field errors.


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyRequest(BaseModel):
    code: Optional[Any] = None


class PlaidLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plaid_public_token: Optional[str] = Field(None, alias="plaidPublicToken")


class EarlyAccessRequest(BaseModel):
    email: Optional[str] = None
