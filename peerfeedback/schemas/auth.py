from typing import Optional
from pydantic import BaseModel


class AuthInfo(BaseModel):
    google_id: Optional[str] = None
    is_admin: bool
    logged_in: bool
