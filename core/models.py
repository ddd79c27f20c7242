"""
Core data models for StreamList API

Defines StreamRecord and Page for the Helix streams payload and Token for the
cached app access token.
"""

from dataclasses import dataclass
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class StreamRecord(BaseModel):
    """
    One live channel as observed at fetch time.
    Unknown upstream fields are kept so the payload round-trips verbatim.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str = ""
    user_login: str = ""
    user_name: str = ""
    game_id: str = ""
    game_name: str = ""
    type: str = "live"
    title: str = ""
    viewer_count: int = Field(default=0, ge=0)
    started_at: str = ""
    language: str = ""
    thumbnail_url: str = ""  # contains literal {width} and {height}
    tag_ids: Optional[List[str]] = Field(default_factory=list)
    tags: Optional[List[str]] = Field(default_factory=list)
    is_mature: bool = False

    def thumbnail(self, width: int = 440, height: int = 248) -> str:
        """Render the thumbnail template into a ready URL"""
        return self.thumbnail_url.replace("{width}", str(width)).replace(
            "{height}", str(height)
        )


class Pagination(BaseModel):
    model_config = ConfigDict(extra="allow")

    cursor: Optional[str] = None


class Page(BaseModel):
    """
    One response unit of the streams query.
    A missing cursor marks the final page.
    """

    data: List[StreamRecord] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @property
    def cursor(self) -> Optional[str]:
        return self.pagination.cursor or None


@dataclass
class Token:
    """App access token plus the monotonic time at which it stops being served"""

    access_token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at
