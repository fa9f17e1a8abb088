"""OperationDispatcher: maps request-interface operations to the service.

Pure dispatch: parse the payload into its request schema, call the
service, and translate the result or error into the outcome vocabulary.
No business logic lives here.

    GetProfile        -> Ok | NotFound | ValidationError | Unavailable
    GetProfileByUser  -> Ok | NotFound | ValidationError | Unavailable
    CreateProfile     -> Ok | Conflict | ValidationError | Unavailable
    UpdateProfile     -> Ok | NotFound | Conflict | ValidationError | Unavailable
    TransitionStatus  -> Ok | NotFound | Conflict | InvalidTransition | Unavailable
    QuotePrice        -> Ok | NotFound | ValidationError | Unavailable
    <anything else>   -> NotImplemented

Unexpected exceptions become Fatal (logged with traceback); the process
keeps serving.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from src.sp_common.enums import Operation, Outcome
from src.sp_common.errors import (
    AppError,
    InternalError,
    OperationNotImplementedError,
    ProfileValidationError,
)
from src.sp_profile.application.schemas import (
    CreateProfileRequest,
    GetProfileByUserRequest,
    GetProfileRequest,
    QuotePriceRequest,
    TransitionStatusRequest,
    UpdateProfileRequest,
)
from src.sp_profile.application.service import StoreProfileService

logger = logging.getLogger(__name__)

OUTCOME_HTTP_STATUS: dict[Outcome, int] = {
    Outcome.OK: 200,
    Outcome.VALIDATION_ERROR: 400,
    Outcome.NOT_FOUND: 404,
    Outcome.CONFLICT: 409,
    Outcome.INVALID_TRANSITION: 422,
    Outcome.FATAL: 500,
    Outcome.NOT_IMPLEMENTED: 501,
    Outcome.UNAVAILABLE: 503,
}


@dataclass
class OperationRequest:
    operation: str
    payload: dict[str, Any] = field(default_factory=dict)
    timeout: float | None = None


@dataclass
class OperationResult:
    outcome: Outcome
    data: dict[str, Any] | None = None
    code: int = 0
    message: str = "success"

    @property
    def http_status(self) -> int:
        return OUTCOME_HTTP_STATUS[self.outcome]

    @classmethod
    def from_error(cls, exc: AppError) -> "OperationResult":
        return cls(outcome=exc.outcome, code=exc.code, message=exc.message)


_Handler = Callable[[dict[str, Any], float | None], Awaitable[BaseModel]]


class OperationDispatcher:
    def __init__(self, service: StoreProfileService) -> None:
        self._service = service
        self._handlers: dict[Operation, _Handler] = {
            Operation.GET_PROFILE: self._get_profile,
            Operation.GET_PROFILE_BY_USER: self._get_profile_by_user,
            Operation.CREATE_PROFILE: self._create_profile,
            Operation.UPDATE_PROFILE: self._update_profile,
            Operation.TRANSITION_STATUS: self._transition_status,
            Operation.QUOTE_PRICE: self._quote_price,
        }

    async def dispatch(self, request: OperationRequest) -> OperationResult:
        try:
            operation = Operation(request.operation)
        except ValueError:
            return OperationResult.from_error(OperationNotImplementedError(request.operation))

        handler = self._handlers[operation]
        try:
            data = await handler(request.payload, request.timeout)
        except SchemaValidationError as exc:
            return OperationResult.from_error(ProfileValidationError(_describe(exc)))
        except AppError as exc:
            if exc.outcome is Outcome.FATAL:
                logger.error("%s failed fatally: %s", operation.value, exc.message)
            return OperationResult.from_error(exc)
        except Exception:
            logger.exception("Unhandled error in %s", operation.value)
            return OperationResult.from_error(InternalError())
        return OperationResult(outcome=Outcome.OK, data=data.model_dump())

    # ------------------------------------------------------------------

    async def _get_profile(self, payload: dict[str, Any], timeout: float | None) -> BaseModel:
        req = GetProfileRequest.model_validate(payload)
        return await self._service.get_profile(req.id, req.locale, timeout=timeout)

    async def _get_profile_by_user(
        self, payload: dict[str, Any], timeout: float | None
    ) -> BaseModel:
        req = GetProfileByUserRequest.model_validate(payload)
        return await self._service.get_profile_by_user(req.user_id, req.locale, timeout=timeout)

    async def _create_profile(self, payload: dict[str, Any], timeout: float | None) -> BaseModel:
        req = CreateProfileRequest.model_validate(payload)
        return await self._service.create_profile(req, timeout=timeout)

    async def _update_profile(self, payload: dict[str, Any], timeout: float | None) -> BaseModel:
        req = UpdateProfileRequest.model_validate(payload)
        return await self._service.update_profile(req, timeout=timeout)

    async def _transition_status(
        self, payload: dict[str, Any], timeout: float | None
    ) -> BaseModel:
        req = TransitionStatusRequest.model_validate(payload)
        return await self._service.transition_status(
            req.id,
            req.from_status,
            req.to_status,
            expected_version=req.expected_version,
            timeout=timeout,
        )

    async def _quote_price(self, payload: dict[str, Any], timeout: float | None) -> BaseModel:
        req = QuotePriceRequest.model_validate(payload)
        return await self._service.quote_price(req.id, req.amount, req.currency, timeout=timeout)


def _describe(exc: SchemaValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "payload"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
