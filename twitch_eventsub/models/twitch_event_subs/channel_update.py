from typing import List

from pydantic import BaseModel


class ChannelUpdateEvent(BaseModel):
    broadcaster_user_id: str
    broadcaster_user_login: str
    broadcaster_user_name: str
    title: str
    language: str
    category_id: str
    category_name: str
    content_classification_labels: List[str] = []
