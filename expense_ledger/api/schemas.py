"""
Request Bodies

These models only pin down JSON types. Every field is optional; presence,
format and policy checks happen in the services.

Strict types mean "100" is not silently accepted where a number is
required, and true is never a number.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


StrictNumber = Union[StrictInt, StrictFloat]


class RegisterRequest(BaseModel):
    name: Optional[StrictStr] = None
    email: Optional[StrictStr] = None
    password: Optional[StrictStr] = None
    balance: Optional[StrictNumber] = None


class LoginRequest(BaseModel):
    email: Optional[StrictStr] = None
    password: Optional[StrictStr] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[StrictStr] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[StrictStr] = None
    reset_code: Optional[Union[StrictStr, StrictInt]] = Field(default=None, alias="resetCode")
    new_password: Optional[StrictStr] = Field(default=None, alias="newPassword")


class AmountRequest(BaseModel):
    """Body for add-income and add-expense. Numeric strings are allowed."""
    amount: Optional[Union[StrictInt, StrictFloat, StrictStr]] = None
    description: Optional[StrictStr] = None
