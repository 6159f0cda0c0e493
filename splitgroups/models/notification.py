from datetime import datetime
from typing import Dict, Optional
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str
    title: str
    message: str
    data: Dict = Field(default_factory=dict, sa_column=Column(JSON))
    read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
