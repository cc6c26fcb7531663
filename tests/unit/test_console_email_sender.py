"""
Unit tests for ConsoleEmailSender adapter.

Tests verify the welcome message is logged instead of delivered.
"""

import logging

import pytest

from src.adapters.smtp.console import WELCOME_SUBJECT, ConsoleEmailSender


class TestConsoleEmailSender:
    """Tests for ConsoleEmailSender."""

    def test_logs_welcome_message(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()

        with caplog.at_level(logging.INFO):
            sender.send_welcome_email("user@example.com", "validuser.shareframe.social")

        assert "[WELCOME]" in caplog.text
        assert "user@example.com" in caplog.text
        assert "validuser.shareframe.social" in caplog.text
        assert WELCOME_SUBJECT in caplog.text

    def test_returns_none(self) -> None:
        assert ConsoleEmailSender().send_welcome_email("a@b.com", "abc.shareframe.social") is None
