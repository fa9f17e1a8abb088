"""Business validation rules for store profiles.

Pure checks run by the service before any storage round-trip. Each rule
raises ProfileValidationError with a caller-fixable detail message.
Uniqueness is NOT checked here; the database constraints are the guard.
"""

import re
from collections.abc import Collection

from src.sp_common.errors import ProfileValidationError

DISPLAY_NAME_MIN = 2
DISPLAY_NAME_MAX = 64
SLUG_MAX = 64
DESCRIPTION_MAX = 500

_DISPLAY_NAME_RE = re.compile(r"^[\w][\w .&'\-]*$")
_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_COUNTRY_RE = re.compile(r"^[A-Z]{2}$")


def check_display_name(name: str) -> str:
    name = name.strip()
    if not DISPLAY_NAME_MIN <= len(name) <= DISPLAY_NAME_MAX:
        raise ProfileValidationError(
            f"display_name must be {DISPLAY_NAME_MIN}-{DISPLAY_NAME_MAX} characters"
        )
    if not _DISPLAY_NAME_RE.match(name):
        raise ProfileValidationError(
            "display_name may contain letters, digits, spaces and . & ' - _ only"
        )
    return name


def check_slug(slug: str) -> str:
    if len(slug) > SLUG_MAX or not _SLUG_RE.match(slug):
        raise ProfileValidationError(
            "slug must be lower-case letters and digits separated by single hyphens"
        )
    return slug


def slugify(name: str) -> str:
    """Derive a slug from a display name: "Acme & Co." -> "acme-co"."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:SLUG_MAX].rstrip("-")


def check_locale(locale: str, supported: Collection[str]) -> str:
    locale = locale.strip().lower()
    if locale not in supported:
        raise ProfileValidationError(f"Unsupported locale: {locale}")
    return locale


def check_currency(currency: str, supported: Collection[str]) -> str:
    currency = currency.strip().upper()
    if currency not in supported:
        raise ProfileValidationError(f"Unsupported currency: {currency}")
    return currency


def check_country(country: str) -> str:
    if not _COUNTRY_RE.match(country):
        raise ProfileValidationError("country must be an ISO-3166 alpha-2 code, e.g. DE")
    return country


def check_translations(
    translations: dict[str, str], supported_locales: Collection[str]
) -> dict[str, str]:
    """Validate a {locale: text} map; blank texts are dropped."""
    cleaned: dict[str, str] = {}
    for locale, text in translations.items():
        key = check_locale(locale, supported_locales)
        text = text.strip()
        if not text:
            continue
        if len(text) > DESCRIPTION_MAX:
            raise ProfileValidationError(
                f"short_description[{key}] exceeds {DESCRIPTION_MAX} characters"
            )
        cleaned[key] = text
    return cleaned
