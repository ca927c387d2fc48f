from pydantic import BaseModel


class ChannelSubscribeEvent(BaseModel):
    user_id: str
    user_login: str
    user_name: str
    broadcaster_user_id: str
    broadcaster_user_login: str
    broadcaster_user_name: str
    tier: str
    is_gift: bool
