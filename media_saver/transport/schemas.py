# media_saver/transport/schemas.py
from pydantic import BaseModel, Field


class FetchIn(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    name: str | None = Field(default=None, min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$")


class SavedOut(BaseModel):
    file_name: str
