import datetime as dt

from pydantic import BaseModel, ConfigDict


class PhotoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    challenge_id: int
    date: dt.date
    photo_url: str
    thumbnail_url: str
    created_at: dt.datetime
