"""User Schemas: sign-up, admin-created accounts, password change."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventdesk.core.domain_types import MIN_PASSWORD_LENGTH, Role


class UserRegister(BaseModel):
    """Public sign-up. Role is always RegularUser."""
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=100)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty or whitespace")
        return v


class UserCreate(UserRegister):
    role: Role = Role.REGULAR_USER


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=100)


class UserResponse(BaseModel):
    """Public-facing user data. The password never leaves the store."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: Role
