from pydantic import BaseModel, EmailStr, Field, field_validator

from uthabiti.core.permissions import Role


class UserCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    id_number: str = Field(min_length=1, max_length=50)
    role: Role

    @field_validator("full_name", "id_number", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class UserRoleUpdate(BaseModel):
    role: Role
