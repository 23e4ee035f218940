from fastapi import APIRouter, HTTPException, Depends
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError
from pydantic import BaseModel, EmailStr
from typing import Annotated, Optional
from tortoise.transactions import in_transaction
from models.user import User, UserRole
from models.professional_profile import ProfessionalProfile
from helpers.jwt_token import generate_user_token, get_current_user



auth_router = APIRouter()
ph = PasswordHasher()


class SignupPayload(BaseModel):
    name: str
    email: EmailStr
    password: str
    timezone: Optional[str] = None


class LoginPayload(BaseModel):
    email: str
    password: str


@auth_router.post('/signup')
async def signup(payload: SignupPayload):
    user = await User.filter(email=payload.email).first()
    if user:
        raise HTTPException(status_code=400, detail="User already exists")
    try:
        # A professional account is useless without its profile, create both or neither
        async with in_transaction():
            user = await User.create(
                name=payload.name,
                email=payload.email,
                password=ph.hash(payload.password),
                role=UserRole.THERAPIST,
            )
            profile_fields = {"user": user, "display_name": payload.name}
            if payload.timezone:
                profile_fields["timezone"] = payload.timezone
            profile = await ProfessionalProfile.create(**profile_fields)

        return {
            "success": True,
            "detail": "Professional account created successfully",
            "data": {
                "user": {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "role": user.role.value,
                },
                "profile": {
                    "id": profile.id,
                    "display_name": profile.display_name,
                    "timezone": profile.timezone,
                },
            },
        }
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"server error {e}")


@auth_router.post("/signin")
async def signin(data: LoginPayload):
    user = await User.filter(email=data.email).first()
    if not user:
        raise HTTPException(status_code=400, detail="User Not found")

    try:
        ph.verify(user.password, data.password)
    except (VerifyMismatchError, InvalidHashError):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    try:
        token = generate_user_token({"id": user.id})
    except ValueError:
        raise HTTPException(status_code=500, detail="Authentication failed. Please try again.")

    return {
        "success": True,
        "token": token,
        "user": {
            'name': user.name,
            'email': user.email,
            'role': user.role.value,
        },
        "detail": "Login Successfully"
    }


@auth_router.get("/profile")
async def get_profile(user: Annotated[User, Depends(get_current_user)]):
    profile = await ProfessionalProfile.get_or_none(user_id=user.id)
    return {
        "success": True,
        "data": {
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
            "profile": {
                "id": profile.id,
                "display_name": profile.display_name,
                "timezone": profile.timezone,
            } if profile else None,
        },
        "detail": "Profile fetched successfully"
    }
