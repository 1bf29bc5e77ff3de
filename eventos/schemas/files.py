from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from eventos.models.event_file import FileCategory


class EventFileResponse(BaseModel):
    id: str
    event_id: str
    file_name: str
    file_size: int
    file_type: str
    category: FileCategory
    uploaded_at: datetime
    url: Optional[str] = None

    class Config:
        from_attributes = True
