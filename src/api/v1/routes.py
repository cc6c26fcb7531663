"""
API v1 routes.

Defines the REST endpoint for the registration API. A client disconnect
cancels the registration's RequestContext, which aborts the remote call
in flight.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from src.api.dependencies import get_registration_service
from src.api.errors import error_body, status_for
from src.api.models import ErrorResponse, RegisterRequest, RegisterResponse
from src.config.settings import get_settings
from src.domain.context import RequestContext
from src.domain.exceptions import RegistrationError
from src.domain.registration import RegistrationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

DISCONNECT_POLL_SECONDS = 0.1


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid handle, email, or password"},
        409: {"model": ErrorResponse, "description": "Email or handle already registered"},
        422: {"description": "Malformed request body"},
        500: {"model": ErrorResponse, "description": "Storage or credential failure"},
        502: {"model": ErrorResponse, "description": "Identity server call failed"},
        504: {"model": ErrorResponse, "description": "Request deadline exceeded"},
    },
    summary="Register a new user",
    description="Validate the handle, email and password, create the account on the "
    "identity server, and store a local record of it.",
)
async def register(
    request_data: RegisterRequest,
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Register a new account.

    - **handle**: 3-18 letters or digits; the domain suffix is appended
    - **email**: Account email address
    - **password**: At least 8 characters with upper, lower, digit and symbol
    """
    ctx = RequestContext.with_timeout(get_settings().request_timeout_seconds)
    work = asyncio.ensure_future(
        run_in_threadpool(service.register, ctx, request_data.to_domain())
    )
    watcher = asyncio.ensure_future(_cancel_on_disconnect(request, ctx))
    try:
        # Shielded so cancellation reaches ctx without waiting for the worker thread
        outcome = await asyncio.shield(work)
    except asyncio.CancelledError:
        ctx.cancel()
        work.add_done_callback(_discard_result)
        raise
    except RegistrationError as exc:
        return JSONResponse(status_code=status_for(exc), content=error_body(exc))
    finally:
        watcher.cancel()

    return RegisterResponse.from_account(outcome.account)


async def _cancel_on_disconnect(request: Request, ctx: RequestContext) -> None:
    """Cancel the registration once the client goes away."""
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
    logger.warning("Client disconnected, cancelling registration")
    ctx.cancel()


def _discard_result(work: "asyncio.Future[object]") -> None:
    if not work.cancelled() and work.exception() is not None:
        logger.info("Abandoned registration ended with: %s", work.exception())
