# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response.

Request field names match what the mobile client sends. Every ``correo`` is an
EmailStr so lookups see the same normalized address that registration stored.
"""

from datetime import datetime
from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, StringConstraints

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Secret = Annotated[str, StringConstraints(min_length=1, max_length=128)]
Code = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=6)]


# Auth
class RegisterRequest(BaseModel):
    nombre: Name
    usuario: Name
    contrasena: Secret
    correo: EmailStr


class LoginRequest(BaseModel):
    usuario: Name
    contrasena: Secret


class RequestCodeRequest(BaseModel):
    correo: EmailStr


class VerifyCodeRequest(BaseModel):
    correo: EmailStr
    codigo: Code


class ResetPasswordRequest(BaseModel):
    correo: EmailStr
    codigo: Code
    nueva_contrasena: Secret = Field(alias="nuevaContrasena")

    model_config = ConfigDict(populate_by_name=True)


class AccountResponse(BaseModel):
    """Public view of an account; never carries the password hash."""

    id: int
    nombre: str
    usuario: str = Field(validation_alias=AliasChoices("usuario", "username"))
    correo: str = Field(validation_alias=AliasChoices("correo", "email"))
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(BaseModel):
    success: bool
    id: int | None = None
    usuario: str | None = None
    user: AccountResponse | None = None
    error: str | None = None
    message: str


class LoginResponse(BaseModel):
    success: bool
    message: str
    user: AccountResponse | None = None
    token: str | None = None


class MessageResponse(BaseModel):
    success: bool
    message: str


class VerifyCodeResponse(BaseModel):
    success: bool
    valido: bool


class ResetPasswordResponse(BaseModel):
    success: bool
    message: str
    user: AccountResponse | None = None
