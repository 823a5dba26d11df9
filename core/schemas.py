"""
Gateway Data Schemas

This module defines Pydantic models for everything that flows through the
gateway: intercepted requests, cached responses, trade records and the
metrics returned to the dashboard.

Models:
    - ResourceRequest: An outbound request from the journal front end
    - CachedResponse: A response as stored in (or served from) a cache partition
    - CacheEntryInfo: Listing row describing one cached entry
    - Trade: A journal trade record (only the price fields matter for RRR)
    - RRRSummary: Aggregate risk:reward over a list of trades
    - GatewayMessage: Control message sent to the cache manager
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator, ConfigDict


# ============================================
# Request / Response Models
# ============================================

class ResourceRequest(BaseModel):
    """
    Outbound resource request seen at the interception boundary.

    Attributes:
        method: HTTP method, normalized to uppercase
        url: Origin-relative URL (path plus optional query string)
        headers: Request headers forwarded to the origin
        body: Raw request body (only meaningful for non-GET requests)
        mode: Request mode; "navigate" marks a full-page navigation

    Example:
        >>> req = ResourceRequest(url="/dashboard", mode="navigate")
        >>> req.cache_key
        'GET /dashboard'
        >>> req.is_navigation
        True
    """

    method: str = Field(
        default="GET",
        description="HTTP method"
    )

    url: str = Field(
        ...,
        description="Origin-relative URL including query string",
        examples=["/", "/favicon.png", "/api/trades?limit=20"]
    )

    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Request headers"
    )

    body: bytes = Field(
        default=b"",
        description="Raw request body"
    )

    mode: Optional[str] = Field(
        default=None,
        description="Request mode (navigate, cors, no-cors, same-origin)"
    )

    @field_validator('method')
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Ensure method is uppercase"""
        return v.upper()

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure url is origin-relative"""
        if not v.startswith("/"):
            raise ValueError(f"Request url must be origin-relative, got '{v}'")
        return v

    @property
    def path(self) -> str:
        """URL path without the query string"""
        return urlsplit(self.url).path

    @property
    def cache_key(self) -> str:
        """Request identity used as cache key (method + URL)"""
        return f"{self.method} {self.url}"

    @property
    def is_navigation(self) -> bool:
        return self.mode == "navigate"


class CachedResponse(BaseModel):
    """
    A response as stored in a cache partition.

    The same model represents fresh network responses and synthesized
    offline responses; cached_at is only set on copies stored in a partition.

    Attributes:
        status: HTTP status code
        headers: Response headers
        body: Raw response body
        cached_at: When this copy was written to a partition (UTC)
    """

    status: int = Field(
        ...,
        ge=100,
        le=599,
        description="HTTP status code"
    )

    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Response headers"
    )

    body: bytes = Field(
        default=b"",
        description="Raw response body"
    )

    cached_at: Optional[datetime] = Field(
        default=None,
        description="Time the entry was stored in a cache partition (UTC)"
    )

    @property
    def ok(self) -> bool:
        """True for 2xx statuses"""
        return 200 <= self.status <= 299

    def json_body(self) -> Any:
        return json.loads(self.body)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class CacheEntryInfo(BaseModel):
    """One row of the cache listing returned by the gateway."""

    key: str
    status: int
    content_type: Optional[str] = None
    size: int = Field(..., ge=0, description="Body size in bytes")
    cached_at: Optional[datetime] = None
    age_seconds: Optional[float] = None


# ============================================
# Trade Models
# ============================================

PriceValue = Optional[Union[float, str]]


class Trade(BaseModel):
    """
    Journal trade record.

    Only entry, stop-loss, take-profit and direction participate in the
    risk:reward computation. Everything else, including fields this model
    does not declare, is carried along untouched.

    Field names follow the journal's JSON contract (entryPrice, slPrice,
    tpPrice); snake_case names are accepted as well.

    Example:
        >>> trade = Trade(entryPrice=100, slPrice=90, tpPrice=120, direction="Long")
        >>> trade.direction
        'Long'
    """

    entry_price: PriceValue = Field(default=None, alias="entryPrice")
    sl_price: PriceValue = Field(default=None, alias="slPrice")
    tp_price: PriceValue = Field(default=None, alias="tpPrice")

    direction: Optional[str] = Field(
        default=None,
        description="Trade direction",
        examples=["Long", "Short"]
    )

    quantity: PriceValue = None
    pnl: PriceValue = None
    status: Optional[str] = Field(
        default=None,
        examples=["Open", "Win", "Loss", "BE"]
    )

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "entryPrice": 1.0520,
                "slPrice": 1.0490,
                "tpPrice": 1.0580,
                "direction": "Long",
                "quantity": 2.0,
                "pnl": 1200,
                "status": "Win"
            }
        }
    )


class AverageRRRequest(BaseModel):
    """Request body for the average risk:reward endpoint."""

    trades: List[Trade] = Field(default_factory=list)


class RRRSummary(BaseModel):
    """
    Aggregate risk:reward over a list of trades.

    valid_count lets callers distinguish an average of 0 caused by
    "no trade had usable prices" from real data.
    """

    average_rr: float = Field(..., ge=0)
    valid_count: int = Field(..., ge=0)
    trade_count: int = Field(..., ge=0)
    display: str = Field(..., examples=["1:2.0", "N/A"])


class GatewayMessage(BaseModel):
    """Control message for the cache manager (CLEAR_CACHE, SKIP_WAITING)."""

    type: str = Field(..., examples=["CLEAR_CACHE", "SKIP_WAITING"])
