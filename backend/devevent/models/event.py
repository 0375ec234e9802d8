import json
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventMode(str, Enum):
    online = "online"
    offline = "offline"
    hybrid = "hybrid"


def _json_string_list(value):
    """
    Multi-part forms can only carry strings, so `tags` / `agenda` arrive
    JSON-encoded ('["python", "web"]'). Lists are accepted as-is.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError("must be a JSON array of strings") from exc
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("must be a JSON array of strings")
    return [v.strip() for v in value if v.strip()]


class EventForm(BaseModel):
    """
    Every non-file field of POST /events. Unknown fields are rejected so
    a typo in the form never silently drops data.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    overview: str = Field(..., min_length=1, max_length=500)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    mode: EventMode
    audience: str = Field(..., min_length=1)
    organizer: str = Field(..., min_length=1)
    tags: List[str] = Field(..., min_length=1)
    agenda: List[str] = Field(..., min_length=1)

    @field_validator("mode", mode="before")
    @classmethod
    def _lower_mode(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, v):
        # a set of tags – drop repeats, keep first-seen order
        return list(dict.fromkeys(_json_string_list(v)))

    @field_validator("agenda", mode="before")
    @classmethod
    def _parse_agenda(cls, v):
        return _json_string_list(v)


class EventOut(BaseModel):
    id: str
    slug: str
    title: str
    description: str
    overview: str
    date: str
    time: str
    venue: str
    location: str
    mode: EventMode
    audience: str
    organizer: str
    agenda: List[str]
    tags: List[str]
    image: str
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "EventOut":
        return cls(**{k: v for k, v in doc.items() if k != "_id"}, id=str(doc["_id"]))
