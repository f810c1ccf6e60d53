import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    PACKER = "packer"
    DRIVER = "driver"


class AuthUser(BaseModel):
    """
    Represents an authenticated user from the auth service token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
