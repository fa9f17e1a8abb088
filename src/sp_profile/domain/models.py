"""Domain models for sp_profile: pure dataclasses, no I/O."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.sp_common.enums import ProfileStatus


@dataclass
class StoreProfile:
    id: str
    user_id: int | None
    namespace: str
    display_name: str
    slug: str
    locale: str
    currency: str
    status: ProfileStatus
    short_description: dict[str, str]
    country: str | None
    version: int
    created_at: datetime
    updated_at: datetime


@dataclass
class NewStoreProfile:
    """Insert payload; id is assigned by the service before the INSERT."""

    id: str
    user_id: int | None
    namespace: str
    display_name: str
    slug: str
    locale: str
    currency: str
    short_description: dict[str, str] = field(default_factory=dict)
    country: str | None = None
    status: ProfileStatus = ProfileStatus.DRAFT


@dataclass
class ProfilePatch:
    """Partial update. None means "leave unchanged"."""

    display_name: str | None = None
    slug: str | None = None
    locale: str | None = None
    currency: str | None = None
    short_description: dict[str, str] | None = None
    country: str | None = None
    status: ProfileStatus | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)


@dataclass
class StoreProfileView:
    """Locale projection of a StoreProfile; the value cached per (id, locale)."""

    id: str
    user_id: int | None
    namespace: str
    display_name: str
    slug: str
    locale: str
    requested_locale: str
    currency: str
    status: ProfileStatus
    description: str | None
    country: str | None
    version: int
    created_at: datetime
    updated_at: datetime


@dataclass
class PriceQuote:
    store_id: str
    source_amount: Decimal
    source_currency: str
    amount: Decimal
    currency: str
    rate: Decimal
    rate_generation: int
    rates_fetched_at: datetime | None


def localize(profile: StoreProfile, locale: str) -> StoreProfileView:
    """Project a profile for `locale`.

    Description fallback: requested locale, then the store's own locale,
    then any translation (lowest locale code, for determinism), else None.
    """
    translations = profile.short_description
    description = translations.get(locale) or translations.get(profile.locale)
    if description is None and translations:
        description = translations[min(translations)]
    return StoreProfileView(
        id=profile.id,
        user_id=profile.user_id,
        namespace=profile.namespace,
        display_name=profile.display_name,
        slug=profile.slug,
        locale=profile.locale,
        requested_locale=locale,
        currency=profile.currency,
        status=profile.status,
        description=description,
        country=profile.country,
        version=profile.version,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )
