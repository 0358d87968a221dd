import re

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.core.security import create_access_token
from app.deps import get_current_user, get_db_client
from app.models.user import User
from app.services import users as user_service

router = APIRouter()

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = r"^\d+$"


def _check_password(v: str | None) -> str | None:
    if v is not None and not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    return v


class SignupRequest(BaseModel):
    username: str = Field(min_length=4, max_length=254)
    first_name: str = Field(min_length=1, max_length=20, validation_alias=AliasChoices("first_name", "firstname"))
    last_name: str = Field(min_length=1, max_length=20, validation_alias=AliasChoices("last_name", "lastname"))
    password: str = Field(min_length=6, max_length=72)
    phone_no: str = Field(
        min_length=10, max_length=15, pattern=PHONE_PATTERN, validation_alias=AliasChoices("phone_no", "Phone_No")
    )

    @field_validator("username")
    @classmethod
    def username_is_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_has_uppercase(cls, v: str | None) -> str | None:
        return _check_password(v)


class SigninRequest(BaseModel):
    username: str = Field(min_length=4, max_length=254)
    password: str = Field(min_length=1, max_length=72)


class UpdateRequest(BaseModel):
    first_name: str | None = Field(
        default=None, min_length=1, max_length=20, validation_alias=AliasChoices("first_name", "firstname")
    )
    last_name: str | None = Field(
        default=None, min_length=1, max_length=20, validation_alias=AliasChoices("last_name", "lastname")
    )
    password: str | None = Field(default=None, min_length=6, max_length=72)
    phone_no: str | None = Field(
        default=None,
        min_length=10,
        max_length=15,
        pattern=PHONE_PATTERN,
        validation_alias=AliasChoices("phone_no", "Phone_No"),
    )

    @field_validator("password")
    @classmethod
    def password_has_uppercase(cls, v: str | None) -> str | None:
        return _check_password(v)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, client: AsyncIOMotorClient = Depends(get_db_client)):
    """Create user + seeded account atomically; return a bearer token."""
    user, _ = await user_service.signup(
        client,
        username=body.username,
        first_name=body.first_name,
        last_name=body.last_name,
        password=body.password,
        phone_no=body.phone_no,
    )
    return {"message": "User created successfully", "token": create_access_token(str(user.id))}


@router.post("/signin")
async def signin(body: SigninRequest):
    token = await user_service.signin(body.username, body.password)
    return {"message": "Login successful", "token": token}


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
    return {"message": "Profile fetched successfully", "user": await user_service.profile(user)}


@router.put("/update")
async def update(body: UpdateRequest, user: User = Depends(get_current_user)):
    updated = await user_service.update_profile(
        user,
        first_name=body.first_name,
        last_name=body.last_name,
        phone_no=body.phone_no,
        password=body.password,
    )
    return {"message": f"Updated fields: {', '.join(updated)}", "updated_fields": updated}


@router.get("/users")
async def users(
    filter: str = Query("", max_length=100),
    user: User = Depends(get_current_user),
):
    """Search other users by username, name or phone number (case-insensitive)."""
    found = await user_service.search_users(filter, exclude_id=user.id)
    return {"message": "Users fetched successfully", "users": [u.public_dict() for u in found]}
