from pydantic import BaseModel


class AuthRequest(BaseModel):
    email: str
    password: str
    full_name: str | None = None


class AuthResponse(BaseModel):
    token: str


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: str | None = None
