"""Pydantic schemas for the auth endpoints.

Learn: Schemas only check shape (fields present, right types). The
business rules (email format, password length, confirmation match)
live in AuthService so every entry point gets the same messages.
"""

from pydantic import BaseModel


class SignupRequest(BaseModel):
    email: str
    password: str
    password_confirm: str
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str
    password_confirm: str


class UpdatePasswordRequest(BaseModel):
    password_current: str
    password: str
    password_confirm: str


class MessageResponse(BaseModel):
    status: str = "success"
    message: str
