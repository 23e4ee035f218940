import jwt
import logging
import os
from datetime import datetime, timedelta, timezone
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fastapi import Depends, HTTPException
from typing import Annotated, Tuple
from models.user import User
from models.professional_profile import ProfessionalProfile

logger = logging.getLogger("auth")

security = HTTPBearer()

TOKEN_EXPIRY_HOURS = 24


def _jwt_key() -> str:
    jwt_key = os.getenv("JWT_SECRET")
    if not jwt_key:
        raise ValueError("JWT_SECRET environment variable is not set")
    return jwt_key


def generate_user_token(payload: dict):
    claims = {
        **payload,
        "exp": datetime.now(timezone.utc) + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    return jwt.encode(claims, _jwt_key(), algorithm='HS256')


def decode_user_token(token: str):
    try:
        return jwt.decode(token, _jwt_key(), algorithms=['HS256'])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid Token")


async def get_current_user(credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)]) -> User:
    user_credential = decode_user_token(token=credentials.credentials)

    user_id = user_credential.get("id")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid Token")

    user = await User.filter(id=user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid Credentials")
    return user


async def require_professional(user: Annotated[User, Depends(get_current_user)]) -> Tuple[User, ProfessionalProfile]:
    if not user.can_manage_availability:
        logger.warning(f"User {user.id} with role {user.role.value} tried to manage availability")
        raise HTTPException(status_code=403, detail="Only professionals can manage availability")

    profile = await ProfessionalProfile.get_or_none(user_id=user.id)
    if not profile:
        raise HTTPException(status_code=404, detail="Professional profile not found")
    return user, profile
