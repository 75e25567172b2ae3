"""Local mirror of the signed-in user's fitness profile."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel


class UserProfileRow(SQLModel, table=True):
    __tablename__ = "user_profiles"

    user_id: str = Field(primary_key=True)
    user_age: int
    user_weight: float
    user_weight_unit: str
    user_fitness_level: int
    user_physical_limitations: str = ""
    updated_at: Optional[str] = None


__all__ = ["UserProfileRow"]
