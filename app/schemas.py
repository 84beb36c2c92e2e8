"""Pydantic schemas for API request/response bodies."""

from enum import Enum
from typing import List, Literal
from pydantic import BaseModel, Field


class CharacterStatus(str, Enum):
    ALIVE = "Alive"
    DEAD = "Dead"
    UNKNOWN = "unknown"


class CharacterGender(str, Enum):
    FEMALE = "Female"
    MALE = "Male"
    GENDERLESS = "Genderless"
    UNKNOWN = "unknown"


class CharacterCreate(BaseModel):
    """Body accepted by POST /character. Unknown keys are ignored."""

    name: str = Field(min_length=1)
    status: CharacterStatus
    species: str = Field(min_length=1)
    gender: CharacterGender
    type: str = ""


class CharacterIdParam(BaseModel):
    # ASCII digits only; no sign, whitespace or leading zero
    id: str = Field(pattern=r"^(0|[1-9][0-9]*)$")


class CharacterOut(BaseModel):
    id: int
    name: str
    status: str
    species: str


class CharacterCreated(BaseModel):
    id: int
    message: str = "Character created successfully"


class ServiceInfo(BaseModel):
    message: str
    endpoints: List[str]


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope used by every non-2xx response."""

    error: str
    details: List[ErrorDetail] | None = None


class HealthcheckOut(BaseModel):
    status: Literal["ok", "degraded"]
    db_ok: bool
    character_count: int
