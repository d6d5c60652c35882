"""
Database Schemas for the Lessons API

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase class name.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime

# Fields a PUT /lessons/{id} request may set; anything else is ignored.
LESSON_UPDATABLE_FIELDS = ("subject", "location", "price", "spaces", "image")


class Lesson(BaseModel):
    subject: str = Field(..., description="Subject taught")
    location: str = Field(..., description="Where the lesson takes place")
    price: Union[int, float] = Field(..., ge=0, description="Price per place")
    spaces: int = Field(..., ge=0, description="Remaining capacity")
    image: Optional[str] = Field(None, description="File name under /images")


class OrderItem(BaseModel):
    lessonId: str = Field(..., description="Hex ObjectId of the lesson")
    quantity: int = Field(..., gt=0)


class Order(BaseModel):
    name: str = Field(..., description="Customer name, letters and spaces only")
    phone: str = Field(..., description="Customer phone, digits only")
    items: List[OrderItem] = Field(..., min_length=1)
    createdAt: datetime


# These schemas document the stored shape; request bodies are validated
# by hand in main.py so that each failure maps to its own error message.
