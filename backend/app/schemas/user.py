from pydantic import BaseModel, Field
from app.models.user import UserRole

class CreateUserRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: UserRole = UserRole.USER
