from tortoise import fields
from tortoise.models import Model
from enum import Enum


class UserRole(Enum):
    ADMIN = "admin"
    THERAPIST = "therapist"
    USER = "user"

class User(Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    role = fields.CharEnumField(enum_type=UserRole, max_length=10, default=UserRole.USER)
    email = fields.CharField(max_length=255, unique=True)
    password = fields.CharField(max_length=255)

    professional_profile: fields.BackwardOneToOneRelation["ProfessionalProfile"]

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    @property
    def can_manage_availability(self) -> bool:
        return self.role in (UserRole.THERAPIST, UserRole.ADMIN)
