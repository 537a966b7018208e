"""Pydantic request bodies for API endpoints."""

from pydantic import BaseModel, Field

from lifesim.models import CharacterSeed


class NewGameBody(BaseModel):
    character: CharacterSeed
    difficulty: str = "medium"
    level: str = "demo"


class ChoiceBody(BaseModel):
    choice: str = Field(pattern=r"^[A-D]$")
    custom_text: str | None = Field(default=None, max_length=500)


class TickBody(BaseModel):
    interval: float = Field(default=1.0, gt=0)
