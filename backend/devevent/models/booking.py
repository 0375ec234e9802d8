from datetime import datetime
from pydantic import BaseModel, EmailStr

class BookingCreate(BaseModel):
    email: EmailStr

class BookingOut(BaseModel):
    id: str
    event_id: str
    slug: str
    email: EmailStr
    created_at: datetime
