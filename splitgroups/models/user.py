from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel

class User(SQLModel, table=True):
    """User directory entry; groups, members and expenses refer to it by id only."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    # stored lower case, invite lookups match on it exactly
    email: Optional[str] = Field(default=None, index=True, unique=True)
    google_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
