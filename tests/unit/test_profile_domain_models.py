"""Tests for sp_profile.domain.models: patch emptiness and locale projection."""

from datetime import UTC, datetime

from src.sp_common.enums import ProfileStatus
from src.sp_profile.domain.models import ProfilePatch, StoreProfile, localize


def _make_profile(**overrides) -> StoreProfile:
    fields = dict(
        id="store-1",
        user_id=None,
        namespace="default",
        display_name="Acme",
        slug="acme",
        locale="de",
        currency="EUR",
        status=ProfileStatus.DRAFT,
        short_description={"de": "Werkzeug", "ru": "Инструменты"},
        country="DE",
        version=4,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )
    fields.update(overrides)
    return StoreProfile(**fields)


class TestProfilePatch:
    def test_empty(self) -> None:
        assert ProfilePatch().is_empty()

    def test_not_empty(self) -> None:
        assert not ProfilePatch(status=ProfileStatus.MODERATING).is_empty()
        assert not ProfilePatch(short_description={}).is_empty()


class TestLocalize:
    def test_requested_locale_wins(self) -> None:
        view = localize(_make_profile(), "ru")
        assert view.description == "Инструменты"
        assert view.requested_locale == "ru"
        assert view.locale == "de"

    def test_falls_back_to_store_locale(self) -> None:
        assert localize(_make_profile(), "en").description == "Werkzeug"

    def test_falls_back_to_lowest_locale_code(self) -> None:
        profile = _make_profile(short_description={"ru": "Б", "fr": "A"})
        assert localize(profile, "en").description == "A"

    def test_no_translations(self) -> None:
        assert localize(_make_profile(short_description={}), "en").description is None

    def test_carries_version_and_status(self) -> None:
        view = localize(_make_profile(status=ProfileStatus.PUBLISHED), "de")
        assert view.version == 4
        assert view.status is ProfileStatus.PUBLISHED
