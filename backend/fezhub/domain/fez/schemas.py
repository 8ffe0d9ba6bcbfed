from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fezhub.domain.fez.models import FezPost, FezType, SeaMonkey
from fezhub.domain.fez.timefmt import date_from_parameter


class FezContentData(BaseModel):
    """Full set of user-editable fez fields, used for both create and update."""

    fez_type: FezType
    title: str = Field(..., min_length=1, max_length=100)
    info: str = Field(..., min_length=1, max_length=2048)
    start_time: str = Field(..., max_length=64)
    end_time: str = Field(..., max_length=64)
    location: str = Field(..., min_length=1, max_length=200)
    min_capacity: int = Field(..., ge=0, le=1000)
    max_capacity: int = Field(..., ge=0, le=1000)

    @field_validator("title", "info", "location")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _parseable_time(cls, value: str) -> str:
        # "" means to-be-determined
        if value and date_from_parameter(value) is None:
            raise ValueError("must be epoch seconds, ISO-8601, or empty")
        return value

    @model_validator(mode="after")
    def _capacity_bounds(self) -> "FezContentData":
        if self.max_capacity and self.min_capacity > self.max_capacity:
            raise ValueError("min_capacity cannot exceed max_capacity")
        return self


class PostCreateData(BaseModel):
    text: str = Field(..., min_length=1, max_length=2048)
    image_data: Optional[str] = None  # base64

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SeaMonkeyData(BaseModel):
    user_id: str
    username: str

    @classmethod
    def from_domain(cls, monkey: SeaMonkey) -> "SeaMonkeyData":
        return cls(user_id=monkey.user_id, username=monkey.username)


class FezPostData(BaseModel):
    post_id: str
    fez_id: str
    author_id: str
    text: str
    image: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, post: FezPost) -> "FezPostData":
        return cls(
            post_id=post.id,
            fez_id=post.fez_id,
            author_id=post.author_id,
            text=post.text,
            image=post.image,
            created_at=post.created_at,
        )


class FezData(BaseModel):
    fez_id: str
    owner_id: str
    fez_type: str
    title: str
    info: str
    start_time: str
    end_time: str
    location: str
    seamonkeys: List[SeaMonkeyData] = []
    waiting_list: List[SeaMonkeyData] = []
    posts: Optional[List[FezPostData]] = None
