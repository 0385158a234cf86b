"""Account-level schemas: public profile, tree points and revenue."""

from typing import Optional

from pydantic import Field

from storefront.models.base import ApiModel


class PublicUser(ApiModel):
    uid: str
    display_name: str = ''
    photo_url: Optional[str] = Field(None, alias='photoURL')


class TreePoints(ApiModel):
    """Lifetime points earned and the balance left to spend."""

    total: int = 0
    balance: int = 0


class Revenue(ApiModel):
    revenue_cents: int = 0
