"""Store schemas."""
from datetime import datetime
from pydantic import BaseModel, Field

from storefront.models.subscription import SubscriptionStatus


class SubscriptionResponse(BaseModel):
    status: SubscriptionStatus
    start_date: datetime
    trial_ends_at: datetime | None = None
    end_date: datetime | None = None
    is_auto_renew: bool = False
    plan_id: int | None = None

    class Config:
        from_attributes = True


class PublicStoreResponse(BaseModel):
    name: str
    store_type: str
    address: str | None = None
    url: str | None = None
    template_name: str

    class Config:
        from_attributes = True


class StoreResponse(PublicStoreResponse):
    id: int
    created_at: datetime | None = None
    subscription: SubscriptionResponse | None = None


class TemplateUpdate(BaseModel):
    template_name: str = Field(min_length=1, max_length=50)
