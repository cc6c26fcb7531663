"""
Console email sender adapter - Implements WelcomeEmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging welcome messages instead of delivering them.
"""

import logging

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to ShareFrame"


class ConsoleEmailSender:
    """
    Implements WelcomeEmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def send_welcome_email(self, email: str, handle: str) -> None:
        """
        Log the welcome message (simulates email delivery).

        Args:
            email: Recipient email address
            handle: Normalized handle of the new account
        """
        logger.info("[WELCOME] Email: %s Handle: %s Subject: %s", email, handle, WELCOME_SUBJECT)
