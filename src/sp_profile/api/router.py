"""sp_profile HTTP endpoints: thin transport over OperationDispatcher.

POST  /rpc                                {"operation": ..., "payload": {...}}
GET   /profiles/{profile_id}              GetProfile (?locale=)
POST  /profiles                           CreateProfile
PATCH /profiles/{profile_id}              UpdateProfile
POST  /profiles/{profile_id}/status       TransitionStatus {"from": ..., "to": ...}
GET   /profiles/{profile_id}/quote        QuotePrice (?amount=&currency=)
GET   /users/{user_id}/profile            GetProfileByUser (?locale=)

Every route answers with the ApiResponse envelope; the HTTP status is
derived from the outcome so each outcome has a distinct code.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.sp_common.enums import Operation, Outcome
from src.sp_common.response import error_response, success_response
from src.sp_profile.api.dispatcher import OperationDispatcher, OperationRequest, OperationResult

router = APIRouter(tags=["store-profiles"])


class RpcRequest(BaseModel):
    operation: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timeout: float | None = Field(None, gt=0)


def get_dispatcher(request: Request) -> OperationDispatcher:
    """Dispatcher built at startup (see src/main.py lifespan)."""
    return request.app.state.dispatcher


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


def _respond(request: Request, result: OperationResult, ok_status: int = 200) -> JSONResponse:
    if result.outcome is Outcome.OK:
        resp, status = success_response(result.data), ok_status
    else:
        resp, status = error_response(result.code, result.message, result.outcome), result.http_status
    resp.request_id = _get_request_id(request)
    return JSONResponse(status_code=status, content=resp.model_dump(mode="json"))


@router.post("/rpc")
async def rpc(
    request: Request,
    body: RpcRequest,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
) -> JSONResponse:
    result = await dispatcher.dispatch(
        OperationRequest(operation=body.operation, payload=body.payload, timeout=body.timeout)
    )
    return _respond(request, result)


@router.get("/profiles/{profile_id}")
async def get_profile(
    profile_id: str,
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    locale: str | None = Query(None),
) -> JSONResponse:
    payload: dict[str, Any] = {"id": profile_id}
    if locale is not None:
        payload["locale"] = locale
    result = await dispatcher.dispatch(OperationRequest(Operation.GET_PROFILE.value, payload))
    return _respond(request, result)


@router.post("/profiles")
async def create_profile(
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    body: dict[str, Any] = Body(...),
) -> JSONResponse:
    result = await dispatcher.dispatch(OperationRequest(Operation.CREATE_PROFILE.value, body))
    return _respond(request, result, ok_status=201)


@router.patch("/profiles/{profile_id}")
async def update_profile(
    profile_id: str,
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    body: dict[str, Any] = Body(...),
) -> JSONResponse:
    payload = {**body, "id": profile_id}
    result = await dispatcher.dispatch(OperationRequest(Operation.UPDATE_PROFILE.value, payload))
    return _respond(request, result)


@router.post("/profiles/{profile_id}/status")
async def transition_status(
    profile_id: str,
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    body: dict[str, Any] = Body(...),
) -> JSONResponse:
    payload = {**body, "id": profile_id}
    result = await dispatcher.dispatch(
        OperationRequest(Operation.TRANSITION_STATUS.value, payload)
    )
    return _respond(request, result)


@router.get("/profiles/{profile_id}/quote")
async def quote_price(
    profile_id: str,
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    amount: str = Query(...),
    currency: str = Query(...),
) -> JSONResponse:
    payload = {"id": profile_id, "amount": amount, "currency": currency}
    result = await dispatcher.dispatch(OperationRequest(Operation.QUOTE_PRICE.value, payload))
    return _respond(request, result)


@router.get("/users/{user_id}/profile")
async def get_profile_by_user(
    user_id: int,
    request: Request,
    dispatcher: Annotated[OperationDispatcher, Depends(get_dispatcher)],
    locale: str | None = Query(None),
) -> JSONResponse:
    payload: dict[str, Any] = {"user_id": user_id}
    if locale is not None:
        payload["locale"] = locale
    result = await dispatcher.dispatch(
        OperationRequest(Operation.GET_PROFILE_BY_USER.value, payload)
    )
    return _respond(request, result)
