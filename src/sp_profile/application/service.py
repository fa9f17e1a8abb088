"""StoreProfileService: the only component that mutates store profiles.

Responsibilities:
  - validate input against business rules before touching storage;
  - orchestrate CacheLayer (reads) and the repository (writes);
  - translate infrastructure failures into the caller-facing taxonomy;
  - invalidate the identity's cache entries as the last step of every
    successful mutation, before returning.

Optimistic update loop: attempt 1 reads the current version through the
cache, later attempts read the repository directly. Each attempt either
commits or gets a VersionConflictError; after `max_update_attempts`
conflicts the caller receives UpdateConflictError. Callers that pass an
explicit expected_version get no internal retry.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from src.sp_common.enums import ProfileStatus
from src.sp_common.errors import (
    CacheUnavailableError,
    InvalidTransitionError,
    ProfileNotFoundError,
    ProfileValidationError,
    RateUnavailableError,
    StoreUnavailableError,
    UpdateConflictError,
    VersionConflictError,
)
from src.sp_common.id_generator import generate_store_id
from src.sp_profile.application.schemas import (
    CreateProfileRequest,
    PriceQuoteResponse,
    ProfileResponse,
    UpdateProfileRequest,
)
from src.sp_profile.domain import rules
from src.sp_profile.domain.models import (
    NewStoreProfile,
    PriceQuote,
    ProfilePatch,
    StoreProfile,
    StoreProfileView,
    localize,
)
from src.sp_profile.domain.repository import StoreProfileRepositoryProtocol
from src.sp_profile.domain.transitions import check_transition
from src.sp_profile.infrastructure.cache import CacheLayer
from src.sp_rates.domain.snapshot import RateSnapshotHolder

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


class StoreProfileService:
    def __init__(
        self,
        repo: StoreProfileRepositoryProtocol,
        cache: CacheLayer[StoreProfileView],
        rates: RateSnapshotHolder,
        *,
        supported_locales: Sequence[str],
        supported_currencies: Sequence[str],
        default_locale: str,
        default_namespace: str,
        max_update_attempts: int,
        request_timeout: float,
        id_factory: Callable[[], str] = generate_store_id,
    ) -> None:
        if max_update_attempts < 1:
            raise ValueError("max_update_attempts must be at least 1")
        if default_locale not in supported_locales:
            raise ValueError(f"default locale {default_locale} is not supported")
        self._repo = repo
        self._cache = cache
        self._rates = rates
        self._locales = frozenset(supported_locales)
        self._currencies = frozenset(supported_currencies)
        self._default_locale = default_locale
        self._default_namespace = default_namespace
        self._max_attempts = max_update_attempts
        self._request_timeout = request_timeout
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_profile(
        self,
        profile_id: str,
        locale: str | None = None,
        *,
        timeout: float | None = None,
    ) -> ProfileResponse:
        locale = rules.check_locale(locale or self._default_locale, self._locales)
        async with self._deadline(timeout):
            view = await self._cached_view(profile_id, locale)
        return ProfileResponse.from_view(view)

    async def get_profile_by_user(
        self,
        user_id: int,
        locale: str | None = None,
        *,
        timeout: float | None = None,
    ) -> ProfileResponse:
        """The owner's store, read straight from the repository (not cached)."""
        locale = rules.check_locale(locale or self._default_locale, self._locales)
        async with self._deadline(timeout):
            profile = await self._repo.get_by_user(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"user_id={user_id}")
        return ProfileResponse.from_view(localize(profile, locale))

    async def quote_price(
        self,
        profile_id: str,
        amount: Decimal,
        currency: str,
        *,
        timeout: float | None = None,
    ) -> PriceQuoteResponse:
        """Convert `amount` in `currency` into the store's default currency.

        Uses whatever snapshot generation is published right now; never
        waits for the rate refresher.
        """
        if not amount.is_finite() or amount <= 0:
            raise ProfileValidationError("amount must be positive")
        currency = rules.check_currency(currency, self._currencies)
        snapshot = self._rates.current

        async with self._deadline(timeout):
            view = await self._cached_view(profile_id, self._default_locale)

        rate = snapshot.rate(currency, view.currency)
        if rate is None:
            if snapshot.is_empty:
                raise RateUnavailableError("no exchange rates published yet")
            raise RateUnavailableError(f"no rate for {currency}->{view.currency}")

        try:
            converted = (amount * rate).quantize(_CENTS, rounding=ROUND_HALF_EVEN)
        except InvalidOperation:
            # Result needs more digits than the decimal context carries.
            raise ProfileValidationError(f"amount {amount} is too large to quote") from None

        quote = PriceQuote(
            store_id=view.id,
            source_amount=amount,
            source_currency=currency,
            amount=converted,
            currency=view.currency,
            rate=rate,
            rate_generation=snapshot.generation,
            rates_fetched_at=snapshot.fetched_at,
        )
        return PriceQuoteResponse.from_quote(quote)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_profile(
        self,
        req: CreateProfileRequest,
        *,
        timeout: float | None = None,
    ) -> ProfileResponse:
        display_name = rules.check_display_name(req.display_name)
        slug = rules.check_slug(req.slug) if req.slug is not None else rules.slugify(display_name)
        profile_id = self._id_factory()
        if not slug:
            # Nothing in the name maps to [a-z0-9] (e.g. Cyrillic): derive from the id.
            slug = rules.slugify(f"store-{profile_id}")
        draft = NewStoreProfile(
            id=profile_id,
            user_id=req.user_id,
            namespace=(req.namespace or self._default_namespace).strip(),
            display_name=display_name,
            slug=slug,
            locale=rules.check_locale(req.locale, self._locales),
            currency=rules.check_currency(req.currency, self._currencies),
            short_description=rules.check_translations(req.short_description, self._locales),
            country=rules.check_country(req.country) if req.country is not None else None,
        )
        if not draft.namespace:
            raise ProfileValidationError("namespace must not be blank")

        async with self._deadline(timeout):
            profile = await self._repo.create(draft)
            # Clears any negative entry cached for this id before it existed.
            await self._invalidate(profile.id)

        logger.info("Created store profile %s (%s)", profile.id, profile.slug)
        return ProfileResponse.from_view(localize(profile, profile.locale))

    async def update_profile(
        self,
        req: UpdateProfileRequest,
        *,
        timeout: float | None = None,
    ) -> ProfileResponse:
        patch = self._validated_patch(req.to_patch())

        async with self._deadline(timeout):
            profile = await self._write(req.id, lambda _current: patch, req.expected_version)
            await self._invalidate(profile.id)

        return ProfileResponse.from_view(localize(profile, profile.locale))

    async def transition_status(
        self,
        profile_id: str,
        from_status: ProfileStatus,
        to_status: ProfileStatus,
        *,
        expected_version: int | None = None,
        timeout: float | None = None,
    ) -> ProfileResponse:
        # State-machine check first: an illegal pair never reaches storage.
        check_transition(from_status, to_status)

        def build_patch(current: StoreProfileView) -> ProfilePatch:
            if current.status != from_status:
                raise InvalidTransitionError(current.status.value, to_status.value)
            return ProfilePatch(status=to_status)

        async with self._deadline(timeout):
            profile = await self._write(profile_id, build_patch, expected_version)
            await self._invalidate(profile.id)

        logger.info(
            "Store profile %s status %s -> %s (v%d)",
            profile.id, from_status.value, to_status.value, profile.version,
        )
        return ProfileResponse.from_view(localize(profile, profile.locale))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _write(
        self,
        profile_id: str,
        build_patch: Callable[[StoreProfileView], ProfilePatch],
        expected_version: int | None,
    ) -> StoreProfile:
        if expected_version is not None:
            current = await self._current(profile_id, fresh=True)
            if current.version != expected_version:
                raise VersionConflictError(profile_id, expected_version)
            return await self._repo.update(profile_id, expected_version, build_patch(current))

        for attempt in range(1, self._max_attempts + 1):
            current = await self._current(profile_id, fresh=attempt > 1)
            patch = build_patch(current)
            try:
                return await self._repo.update(profile_id, current.version, patch)
            except VersionConflictError:
                logger.info(
                    "Version conflict on %s at v%d (attempt %d/%d)",
                    profile_id, current.version, attempt, self._max_attempts,
                )
        raise UpdateConflictError(profile_id, self._max_attempts)

    async def _current(self, profile_id: str, *, fresh: bool) -> StoreProfileView:
        if not fresh:
            return await self._cached_view(profile_id, self._default_locale)
        profile = await self._repo.get(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return localize(profile, self._default_locale)

    async def _cached_view(self, profile_id: str, locale: str) -> StoreProfileView:
        async def loader() -> StoreProfileView | None:
            profile = await self._repo.get(profile_id)
            return localize(profile, locale) if profile is not None else None

        view = await self._cache.fetch(profile_id, locale, loader)
        if view is None:
            raise ProfileNotFoundError(profile_id)
        return view

    async def _invalidate(self, profile_id: str) -> None:
        try:
            await self._cache.invalidate(profile_id)
        except CacheUnavailableError:
            # Committed, but stale entries may remain: never report Ok here.
            logger.error("Write to %s committed but cache invalidation failed", profile_id)
            raise

    def _validated_patch(self, patch: ProfilePatch) -> ProfilePatch:
        if patch.is_empty():
            raise ProfileValidationError("update must change at least one field")
        return ProfilePatch(
            display_name=(
                rules.check_display_name(patch.display_name)
                if patch.display_name is not None else None
            ),
            slug=rules.check_slug(patch.slug) if patch.slug is not None else None,
            locale=(
                rules.check_locale(patch.locale, self._locales)
                if patch.locale is not None else None
            ),
            currency=(
                rules.check_currency(patch.currency, self._currencies)
                if patch.currency is not None else None
            ),
            short_description=(
                rules.check_translations(patch.short_description, self._locales)
                if patch.short_description is not None else None
            ),
            country=rules.check_country(patch.country) if patch.country is not None else None,
        )

    @asynccontextmanager
    async def _deadline(self, timeout: float | None) -> AsyncIterator[None]:
        """Bound every storage/cache round-trip of one request."""
        seconds = timeout if timeout is not None else self._request_timeout
        try:
            async with asyncio.timeout(seconds):
                yield
        except TimeoutError:
            raise StoreUnavailableError(f"Request timed out after {seconds:g}s") from None
