from typing import Optional

from pydantic import BaseModel


class ChannelAdBreakBeginEvent(BaseModel):
    duration_seconds: int
    started_at: str
    is_automatic: bool
    broadcaster_user_id: str
    broadcaster_user_login: str
    broadcaster_user_name: str
    requester_user_id: Optional[str] = None
    requester_user_login: Optional[str] = None
    requester_user_name: Optional[str] = None
