from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CourseData(BaseModel):
    id: str
    name: str
    time_zone: str
    institute: str
    created_at: datetime
    deleted_at: Optional[datetime] = None
    class Config:
        from_attributes = True
