from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field, Column, JSON

from app.core.clock import utcnow
from app.core.db import UTCDateTime


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tenant_id: str = Field(index=True)
    email: Optional[str] = None
    role: str = "user"  # admin, user, viewer
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))


class Agent(SQLModel, table=True):
    __tablename__ = "agents"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tenant_id: str = Field(index=True)
    name: str
    type: str = Field(index=True)  # sentiment, recommendation, performance
    status: str = Field(default="inactive", index=True)
    version: str = "1.0.0"
    description: str = ""
    endpoint_url: str = ""
    config: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, index=True, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
