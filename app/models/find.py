import uuid
from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


PLACEHOLDER_IMAGE_URL = "/api/placeholder/300/200"


class NewFind(SQLModel):
    # Caller-supplied fields
    name: str
    date: str = ""
    location: str = ""
    coordinates: str = ""
    what3words: str = ""
    depth: str = ""
    metal_type: str = ""
    condition: str = ""  # Excellent/Good/Fair/Poor or empty
    notes: str = ""


class Find(NewFind, table=True):
    __tablename__ = "finds"

    # Store-assigned fields
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Optional[datetime] = Field(default=None)

    image_url: str = Field(default=PLACEHOLDER_IMAGE_URL)
