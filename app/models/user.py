from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class User(Document):
    username: Indexed(str, unique=True)  # lower-cased email address
    phone_no: Indexed(str, unique=True)
    password_hash: str
    first_name: str
    last_name: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"

    def public_dict(self) -> dict:
        return {
            "id": str(self.id),
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone_no": self.phone_no,
        }
