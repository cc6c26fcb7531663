"""
AT Protocol client adapter - Implements IdentityProvider protocol via httpx.

Every call is a single request with no retries. Each call is bounded by
the client-level timeout, further capped by the time remaining on the
request context. Cancelling the context closes the underlying client,
which drops the connection of a call still in flight.

Known server quirk: a profile lookup for an unknown handle returns
400 Bad Request instead of 404 Not Found. Both mean "does not exist".
"""

import logging
from typing import Any

import httpx

from src.domain.context import RequestContext
from src.domain.exceptions import OrchestrationError
from src.domain.models import (
    AdminCredentials,
    CreatedAccount,
    InviteCode,
    ServiceAccountCredentials,
    Session,
)

logger = logging.getLogger(__name__)

CREATE_INVITE_CODE_ENDPOINT = "/xrpc/com.atproto.server.createInviteCode"
CREATE_SESSION_ENDPOINT = "/xrpc/com.atproto.server.createSession"
CREATE_ACCOUNT_ENDPOINT = "/xrpc/com.atproto.server.createAccount"
GET_PROFILE_ENDPOINT = "/xrpc/app.bsky.actor.getProfile"

INVITE_USE_COUNT = 1
DEFAULT_TIMEOUT_SECONDS = 15.0

_NOT_FOUND_STATUSES = {httpx.codes.NOT_FOUND, httpx.codes.BAD_REQUEST}


class AtprotoClient:
    """
    Implements IdentityProvider protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Identity-protocol server base URL
            timeout: Client-level timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._timeout = timeout
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AtprotoClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_invite_code(self, ctx: RequestContext, admin: AdminCredentials) -> InviteCode:
        step = "create_invite_code"
        response = self._send(
            ctx,
            step,
            "POST",
            CREATE_INVITE_CODE_ENDPOINT,
            json={"useCount": INVITE_USE_COUNT},
            auth=httpx.BasicAuth(admin.username, admin.password),
        )
        self._expect_ok(step, response)
        body = self._decode(step, response, ("code",))
        return InviteCode(code=body["code"])

    def create_session(
        self, ctx: RequestContext, credentials: ServiceAccountCredentials
    ) -> Session:
        step = "create_session"
        response = self._send(
            ctx,
            step,
            "POST",
            CREATE_SESSION_ENDPOINT,
            json={"identifier": credentials.username, "password": credentials.password},
        )
        self._expect_ok(step, response)
        body = self._decode(step, response, ("accessJwt", "did", "handle"))
        return Session(access_token=body["accessJwt"], identity=body["did"], handle=body["handle"])

    def check_user_exists(self, ctx: RequestContext, handle: str, access_token: str) -> bool:
        step = "check_user_exists"
        response = self._send(
            ctx,
            step,
            "GET",
            GET_PROFILE_ENDPOINT,
            params={"actor": handle},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code == httpx.codes.OK:
            return True
        if response.status_code in _NOT_FOUND_STATUSES:
            logger.debug("Profile lookup for %s returned %d", handle, response.status_code)
            return False
        raise OrchestrationError(step, f"unexpected status code: {response.status_code}")

    def register_user(
        self,
        ctx: RequestContext,
        handle: str,
        email: str,
        password: str,
        invite_code: str,
    ) -> CreatedAccount:
        step = "register_user"
        if not handle or not email or not invite_code:
            raise OrchestrationError(step, "handle, email, and invite code are required")

        response = self._send(
            ctx,
            step,
            "POST",
            CREATE_ACCOUNT_ENDPOINT,
            json={
                "handle": handle,
                "email": email,
                "password": password,
                "inviteCode": invite_code,
            },
        )
        self._expect_ok(step, response)
        body = self._decode(step, response, ("handle", "did", "accessJwt", "refreshJwt"))
        return CreatedAccount(
            identity=body["did"],
            handle=body["handle"],
            email=email,
            access_token=body["accessJwt"],
            refresh_token=body["refreshJwt"],
        )

    def _send(
        self,
        ctx: RequestContext,
        step: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        ctx.check(step)
        timeout = ctx.timeout_for(self._timeout)
        try:
            # Closing the client drops the in-flight connection when the request ends first
            return ctx.run(
                step,
                lambda: self._client.request(method, path, timeout=timeout, **kwargs),
                on_abort=self._client.close,
            )
        except httpx.HTTPError as exc:
            logger.error("%s request failed: %s", step, exc)
            raise OrchestrationError(step, f"request failed: {exc}") from exc

    @staticmethod
    def _expect_ok(step: str, response: httpx.Response) -> None:
        if response.status_code != httpx.codes.OK:
            logger.error("%s returned unexpected status %d", step, response.status_code)
            raise OrchestrationError(step, f"unexpected status code: {response.status_code}")

    @staticmethod
    def _decode(step: str, response: httpx.Response, keys: tuple[str, ...]) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise OrchestrationError(step, "failed to decode response") from exc
        if not isinstance(body, dict) or not all(isinstance(body.get(k), str) for k in keys):
            raise OrchestrationError(step, "failed to decode response: unexpected shape")
        return body
