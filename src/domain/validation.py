"""
Input validation - Pure checks over a registration request.

Checks run in a fixed order and stop at the first failure:

1. Presence of handle, email, and password
2. Handle length (3-18, measured without the domain suffix)
3. Handle blocklist (case-insensitive)
4. Handle character set (letters and digits only)
5. Suffix normalization (never fails)
6. Email shape
7. Password strength

Nothing here performs I/O. The blocklist is loaded once and injected
into the validator as an immutable set.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .exceptions import (
    BlockedHandle,
    HandleTooLong,
    HandleTooShort,
    InvalidEmail,
    InvalidHandle,
    MissingFields,
    WeakPassword,
)
from .models import NormalizedRegistration, RegistrationRequest

logger = logging.getLogger(__name__)

DEFAULT_HANDLE_SUFFIX = ".shareframe.social"
MIN_HANDLE_LENGTH = 3
MAX_HANDLE_LENGTH = 18
MIN_PASSWORD_LENGTH = 8

_BLOCKLIST_PATH = Path(__file__).parent / "blocked_handles.json"

_HANDLE_RE = re.compile(r"^[a-zA-Z0-9]+$")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")
_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:'\",.<>?/\\]")


def load_blocked_handles(path: Path = _BLOCKLIST_PATH) -> frozenset[str]:
    """
    Load the reserved-handle list (a JSON array of strings).

    Returns:
        Lowercased, immutable set of blocked handles
    """
    names = json.loads(path.read_text(encoding="utf-8"))
    return frozenset(name.strip().lower() for name in names)


def strip_suffix(handle: str, suffix: str = DEFAULT_HANDLE_SUFFIX) -> str:
    """Remove the domain suffix if present."""
    if handle.endswith(suffix):
        return handle[: -len(suffix)]
    return handle


def normalize_handle(handle: str, suffix: str = DEFAULT_HANDLE_SUFFIX) -> str:
    """
    Trim whitespace and append the domain suffix exactly once.

    Idempotent: normalize_handle(normalize_handle(h)) == normalize_handle(h).
    """
    handle = handle.strip()
    if handle.endswith(suffix):
        return handle
    return handle + suffix


def validate_email(email: str) -> None:
    if not email.isascii() or not _EMAIL_RE.fullmatch(email):
        raise InvalidEmail()


def validate_password(password: str) -> None:
    """All four character classes plus minimum length, one fixed message."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPassword()
    if not (
        _UPPER_RE.search(password)
        and _LOWER_RE.search(password)
        and _DIGIT_RE.search(password)
        and _SYMBOL_RE.search(password)
    ):
        raise WeakPassword()


@dataclass(frozen=True)
class RegistrationValidator:
    """
    Validates and normalizes registration requests.

    Safe for concurrent use: holds only the immutable blocklist
    and the suffix string.
    """

    blocked_handles: frozenset[str]
    suffix: str = DEFAULT_HANDLE_SUFFIX

    def validate(self, request: RegistrationRequest) -> NormalizedRegistration:
        """
        Validate a request and return its normalized form.

        Raises:
            InputValidationError: One of the specific subclasses, for the
                first check that fails
        """
        if not request.handle.strip() or not request.email.strip() or not request.password:
            logger.warning("Validation failed: missing handle, email, or password")
            raise MissingFields()

        base_handle = strip_suffix(request.handle, self.suffix)
        self._validate_handle(base_handle)
        handle = normalize_handle(base_handle, self.suffix)

        try:
            validate_email(request.email)
        except InvalidEmail:
            logger.warning("Validation failed: invalid email %r", request.email)
            raise

        try:
            validate_password(request.password)
        except WeakPassword:
            logger.warning("Validation failed: weak password for handle %s", handle)
            raise

        logger.info("Registration request validated for handle %s", handle)
        return NormalizedRegistration(handle=handle, email=request.email, password=request.password)

    def _validate_handle(self, base_handle: str) -> None:
        if len(base_handle) < MIN_HANDLE_LENGTH:
            logger.warning("Validation failed: handle %r too short", base_handle)
            raise HandleTooShort()
        if len(base_handle) > MAX_HANDLE_LENGTH:
            logger.warning("Validation failed: handle %r too long", base_handle)
            raise HandleTooLong()
        if base_handle.lower() in self.blocked_handles:
            logger.warning("Validation failed: handle %r is blocked", base_handle)
            raise BlockedHandle()
        if not _HANDLE_RE.fullmatch(base_handle):
            logger.warning("Validation failed: handle %r has invalid characters", base_handle)
            raise InvalidHandle()
