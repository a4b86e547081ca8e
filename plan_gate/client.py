"""
Backend API client for entitlement and usage lookups.

Every endpoint answers with an envelope ``{"success": bool, "data": ...}``.
A ``success: false`` envelope, an HTTP error and a transport error are all
reported as SyncFailure so callers handle them identically.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Protocol

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import BackendRequestError, SyncFailure
from .models import EntitlementState

logger = logging.getLogger(__name__)

ENTITLEMENT_PATH = "/entitlement"
ARTICLES_COUNT_PATH = "/usage/articles-count"
IMAGE_USAGE_PATH = "/usage/images"


class ApiEnvelope(BaseModel):
    success: bool
    data: Optional[Any] = None


class EntitlementPayload(BaseModel):
    """Entitlement record as reported by the backend. Flags are kept verbatim."""
    model_config = ConfigDict(populate_by_name=True)

    plan: Literal["free", "pro"]
    expires_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("expiresAt", "planExpiredAt", "expires_at"),
    )
    is_pro: bool = Field(validation_alias=AliasChoices("isPro", "is_pro"))
    is_expired: bool = Field(validation_alias=AliasChoices("isExpired", "is_expired"))

    @field_validator("expires_at")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_state(self) -> EntitlementState:
        return EntitlementState(
            plan=self.plan,
            expires_at=self.expires_at,
            is_pro=self.is_pro,
            is_expired=self.is_expired,
            is_loading=False,
        )


class ArticleCountPayload(BaseModel):
    total: int = Field(..., ge=0)


class ImageUsagePayload(BaseModel):
    monthly_used: int = Field(..., ge=0, validation_alias=AliasChoices("monthlyUsed", "monthly_used"))


class BackendClient(Protocol):
    """What the sync coordinator needs from the backend."""

    async def fetch_entitlement(self) -> EntitlementState: ...

    async def fetch_article_count(self) -> int: ...

    async def fetch_monthly_image_usage(self) -> int: ...


class PlanGateClient:
    """
    Async HTTP client for the subscription backend.

    Handles:
    - Entitlement lookup (plan, expiry, pro/expired flags)
    - Stored article count
    - Monthly image usage
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Backend API root (e.g. 'https://example.com/api')
            api_token: Bearer token sent in the Authorization header
            timeout: Per-request HTTP timeout; the coordinator applies its own deadline on top
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_data(self, path: str) -> Any:
        """
        GET ``path`` and unwrap the response envelope.

        Raises:
            BackendRequestError: transport error or non-2xx status
            SyncFailure: malformed body or ``success: false``
        """
        try:
            response = await self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Backend HTTP error", extra={
                "path": path,
                "status_code": e.response.status_code,
            })
            raise BackendRequestError(
                path,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            logger.warning("Backend request error", extra={
                "path": path,
                "error": str(e),
            })
            raise BackendRequestError(path, f"request failed: {e}")

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise SyncFailure(path, "malformed response envelope", cause=e)

        if not envelope.success:
            raise SyncFailure(path, "backend reported success=false")
        return envelope.data

    async def fetch_entitlement(self) -> EntitlementState:
        data = await self._get_data(ENTITLEMENT_PATH)
        try:
            return EntitlementPayload.model_validate(data).to_state()
        except ValidationError as e:
            raise SyncFailure(ENTITLEMENT_PATH, "malformed entitlement payload", cause=e)

    async def fetch_article_count(self) -> int:
        data = await self._get_data(ARTICLES_COUNT_PATH)
        try:
            return ArticleCountPayload.model_validate(data).total
        except ValidationError as e:
            raise SyncFailure(ARTICLES_COUNT_PATH, "malformed article count payload", cause=e)

    async def fetch_monthly_image_usage(self) -> int:
        data = await self._get_data(IMAGE_USAGE_PATH)
        try:
            return ImageUsagePayload.model_validate(data).monthly_used
        except ValidationError as e:
            raise SyncFailure(IMAGE_USAGE_PATH, "malformed image usage payload", cause=e)
