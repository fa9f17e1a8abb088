"""Pydantic schemas for the sp_profile request interface.

Request models check payload SHAPE only (types, required fields, unknown
keys). Business rules (name charset, supported locale/currency, ...) are
enforced by StoreProfileService before any storage round-trip.

`name` is accepted as an alias of `display_name`; `from`/`to` are the
wire names of the transition endpoints.
"""

from decimal import Decimal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.sp_common.enums import ProfileStatus
from src.sp_profile.domain.models import PriceQuote, ProfilePatch, StoreProfileView

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class GetProfileRequest(_Request):
    id: str = Field(..., min_length=1)
    locale: str | None = None


class GetProfileByUserRequest(_Request):
    user_id: int = Field(..., ge=1)
    locale: str | None = None


class CreateProfileRequest(_Request):
    display_name: str = Field(..., validation_alias=AliasChoices("display_name", "name"))
    currency: str
    locale: str
    slug: str | None = None
    namespace: str | None = None
    user_id: int | None = Field(None, ge=1)
    short_description: dict[str, str] = Field(default_factory=dict)
    country: str | None = None


class UpdateProfileRequest(_Request):
    id: str = Field(..., min_length=1)
    expected_version: int | None = Field(None, ge=1)
    display_name: str | None = Field(None, validation_alias=AliasChoices("display_name", "name"))
    slug: str | None = None
    locale: str | None = None
    currency: str | None = None
    short_description: dict[str, str] | None = None
    country: str | None = None

    def to_patch(self) -> ProfilePatch:
        return ProfilePatch(
            display_name=self.display_name,
            slug=self.slug,
            locale=self.locale,
            currency=self.currency,
            short_description=self.short_description,
            country=self.country,
        )


class TransitionStatusRequest(_Request):
    id: str = Field(..., min_length=1)
    from_status: ProfileStatus = Field(..., validation_alias=AliasChoices("from_status", "from"))
    to_status: ProfileStatus = Field(..., validation_alias=AliasChoices("to_status", "to"))
    expected_version: int | None = Field(None, ge=1)


class QuotePriceRequest(_Request):
    id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=8)
    currency: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    id: str
    user_id: int | None
    namespace: str
    display_name: str
    slug: str
    locale: str
    requested_locale: str
    currency: str
    status: str
    description: str | None
    country: str | None
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_view(cls, v: StoreProfileView) -> "ProfileResponse":
        return cls(
            id=v.id,
            user_id=v.user_id,
            namespace=v.namespace,
            display_name=v.display_name,
            slug=v.slug,
            locale=v.locale,
            requested_locale=v.requested_locale,
            currency=v.currency,
            status=v.status.value,
            description=v.description,
            country=v.country,
            version=v.version,
            created_at=v.created_at.isoformat(),
            updated_at=v.updated_at.isoformat(),
        )


class PriceQuoteResponse(BaseModel):
    store_id: str
    source_amount: str
    source_currency: str
    amount: str
    currency: str
    rate: str
    rate_generation: int
    rates_fetched_at: str | None

    @classmethod
    def from_quote(cls, q: PriceQuote) -> "PriceQuoteResponse":
        return cls(
            store_id=q.store_id,
            source_amount=str(q.source_amount),
            source_currency=q.source_currency,
            amount=str(q.amount),
            currency=q.currency,
            rate=str(q.rate),
            rate_generation=q.rate_generation,
            rates_fetched_at=q.rates_fetched_at.isoformat() if q.rates_fetched_at else None,
        )
