from pydantic import BaseModel


class ChannelFollowEvent(BaseModel):
    user_id: str
    user_login: str
    user_name: str
    broadcaster_user_id: str
    broadcaster_user_login: str
    broadcaster_user_name: str
    followed_at: str
