"""SQLModel table for queued remote mutations."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel


class SyncOperationRow(SQLModel, table=True):
    __tablename__ = "sync_queue"

    id: str = Field(primary_key=True)
    type: str = Field(index=True)
    table_name: str = Field(index=True)
    data: str
    timestamp: int = Field(index=True)
    retries: int = Field(default=0)
    last_error: Optional[str] = None


__all__ = ["SyncOperationRow"]
