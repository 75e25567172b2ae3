"""Local mirror of remote workout rows."""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class WorkoutRow(SQLModel, table=True):
    __tablename__ = "workouts"

    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    workout_type: str
    data: str
    input: str
    created_at: str = Field(index=True)
    updated_at: str


__all__ = ["WorkoutRow"]
