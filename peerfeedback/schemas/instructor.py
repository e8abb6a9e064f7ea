from typing import List, Optional
from pydantic import BaseModel


class InstructorData(BaseModel):
    id: str
    course_id: str
    google_id: Optional[str] = None
    name: str
    email: str
    role: str
    display_name: str
    is_displayed_to_students: bool
    class Config:
        from_attributes = True


class InstructorsData(BaseModel):
    instructors: List[InstructorData]
