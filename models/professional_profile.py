from tortoise import fields
from tortoise.models import Model
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.user import User


class ProfessionalProfile(Model):
    id = fields.IntField(primary_key=True)
    user: fields.OneToOneRelation["User"] = fields.OneToOneField("models.User", related_name="professional_profile")
    display_name = fields.CharField(max_length=255)
    timezone = fields.CharField(max_length=64, default="America/Bogota", description="Zone the weekly blocks are read in")
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "professional_profiles"
