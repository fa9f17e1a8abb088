"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory double that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from src.sp_profile.domain.models import NewStoreProfile, ProfilePatch, StoreProfile


class StoreProfileRepositoryProtocol(Protocol):
    async def get(self, profile_id: str) -> StoreProfile | None: ...

    async def get_by_user(self, user_id: int) -> StoreProfile | None:
        """The owner's oldest store, or None."""
        ...

    async def create(self, draft: NewStoreProfile) -> StoreProfile:
        """Raises DuplicateNameError / DuplicateSlugError on unique violations."""
        ...

    async def update(
        self,
        profile_id: str,
        expected_version: int,
        patch: ProfilePatch,
    ) -> StoreProfile:
        """Raises VersionConflictError (no write) or ProfileNotFoundError."""
        ...
