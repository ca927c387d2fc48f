from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Condition(BaseModel):
    """Sparse subscription condition.

    Only the fields relevant to a subscription type are populated. Unset
    fields are left out of outbound requests and ignored by equality, so
    two conditions are equal when their populated fields match.
    """

    model_config = ConfigDict(extra="allow")

    broadcaster_user_id: Optional[str] = None
    moderator_user_id: Optional[str] = None
    user_id: Optional[str] = None
    from_broadcaster_user_id: Optional[str] = None
    to_broadcaster_user_id: Optional[str] = None
    reward_id: Optional[str | int] = None
    client_id: Optional[str] = None
    extension_client_id: Optional[str] = None
    conduit_id: Optional[str] = None
    organization_id: Optional[str] = None
    category_id: Optional[str] = None
    campaign_id: Optional[str] = None

    def populated(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump().items()
            if value is not None and value != ""
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Condition):
            return NotImplemented
        return self.populated() == other.populated()

    __hash__ = None  # type: ignore[assignment]


class Transport(BaseModel):
    method: str
    callback: Optional[str] = None


class Subscription(BaseModel):
    id: str
    status: str = ""
    type: str = ""
    version: str = ""
    cost: int = 0
    condition: Condition = Field(default_factory=Condition)
    transport: Optional[Transport] = None
    created_at: str = ""


class Pagination(BaseModel):
    cursor: Optional[str] = None


class SubscriptionResponse(BaseModel):
    data: List[Subscription]
    total: Optional[int] = None
    total_cost: Optional[int] = None
    max_total_cost: Optional[int] = None
    pagination: Pagination = Field(default_factory=Pagination)
