"""Records owned by other services that embed storage names."""

from typing import Optional

from pydantic import BaseModel, Field


class PostImage(BaseModel):
    """One image in a post's gallery."""

    id: int
    image_url: str = Field(..., description="Storage name, or a signed URL once rewritten")
    display_order: int = 0
    caption: Optional[str] = None


class UserSummary(BaseModel):
    """User fields returned alongside posts and messages."""

    id: int
    username: str
    display_name: Optional[str] = None
    profile_picture_url: Optional[str] = Field(
        None, description="Storage name or third-party avatar URL"
    )
