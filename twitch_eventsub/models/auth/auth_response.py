from typing import Optional

from pydantic import BaseModel


class AuthResponse(BaseModel):
    access_token: str
    expires_in: Optional[int] = None
    token_type: str
