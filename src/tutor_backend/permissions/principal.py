import base64
import json
from typing import Literal, Optional
from pydantic import BaseModel, model_validator

from tutor_backend.api.exceptions import NotFoundException
from tutor_backend.permissions.levels import ADMIN_ROLES


class Principal(BaseModel):
    """Caller identity as verified by the upstream authentication gateway."""

    user_id: Optional[str] = None
    kind: Literal["staff", "student"] = "staff"
    role: Optional[str] = None
    name: Optional[str] = None

    is_admin: bool = False

    @model_validator(mode='after')
    def set_is_admin_from_role(self):
        self.is_admin = self.kind == "staff" and self.role in ADMIN_ROLES
        return self

    @property
    def is_student(self) -> bool:
        return self.kind == "student"

    @property
    def is_staff(self) -> bool:
        return self.kind == "staff"

    def encode(self) -> bytes:
        return base64.b64encode(bytes(self.model_dump_json(exclude={"is_admin"}), encoding="utf-8"))

    @classmethod
    def decode(cls, value: str | bytes) -> "Principal":
        return cls.model_validate(json.loads(base64.b64decode(value)))

    def get_user_id_or_throw(self) -> str:
        if self.user_id is None:
            raise NotFoundException("User ID not found")
        return self.user_id
