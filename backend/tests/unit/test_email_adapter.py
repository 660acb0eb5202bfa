"""Unit tests for the invitation email adapter."""

from unittest.mock import patch

import pytest

from adapters.email import resend_adapter
from adapters.email.resend_adapter import ResendEmailService

pytestmark = pytest.mark.asyncio

INVITE = {
    "to_email": "pia@example.com",
    "inviter_name": "Olivia <Owner>",
    "project_name": "Harbour St",
    "permission": "write",
    "invitation_token": "tok-123",
}


class TestInvitationEmail:
    async def test_logs_link_when_unconfigured(self, monkeypatch, caplog):
        monkeypatch.setattr(resend_adapter.settings, "resend_api_key", None)
        service = ResendEmailService()

        with patch.object(resend_adapter.resend.Emails, "send") as send, caplog.at_level("INFO"):
            assert await service.send_partner_invitation_email(**INVITE) is True

        send.assert_not_called()
        assert "pia@example.com" in caplog.text

    async def test_sends_html_and_text(self, monkeypatch):
        monkeypatch.setattr(resend_adapter.settings, "resend_api_key", "re_test_key")
        service = ResendEmailService()

        with patch.object(resend_adapter.resend.Emails, "send") as send:
            assert await service.send_partner_invitation_email(**INVITE) is True

        payload = send.call_args.args[0]
        assert payload["to"] == "pia@example.com"
        assert payload["subject"] == "Olivia <Owner> invited you to Harbour St on BuildTrack"
        assert "Olivia &lt;Owner&gt;" in payload["html"]
        assert "View and edit" in payload["html"]
        assert service.invitation_url("tok-123") in payload["text"]

    async def test_provider_failure_returns_false(self, monkeypatch):
        monkeypatch.setattr(resend_adapter.settings, "resend_api_key", "re_test_key")
        service = ResendEmailService()

        with patch.object(resend_adapter.resend.Emails, "send", side_effect=RuntimeError("down")):
            assert await service.send_partner_invitation_email(**INVITE) is False


NOTIFY = {
    "to_email": "olivia@example.com",
    "project_name": "Harbour St",
    "message": "New cost added: <Timber> ($125.00) in Harbour St",
    "unsubscribe_token": "unsub-123",
}


class TestNotificationEmail:
    async def test_logs_when_unconfigured(self, monkeypatch, caplog):
        monkeypatch.setattr(resend_adapter.settings, "resend_api_key", None)
        service = ResendEmailService()

        with patch.object(resend_adapter.resend.Emails, "send") as send, caplog.at_level("INFO"):
            assert await service.send_notification_email(**NOTIFY) is True

        send.assert_not_called()
        assert "olivia@example.com" in caplog.text

    async def test_includes_unsubscribe_link(self, monkeypatch):
        monkeypatch.setattr(resend_adapter.settings, "resend_api_key", "re_test_key")
        service = ResendEmailService()

        with patch.object(resend_adapter.resend.Emails, "send") as send:
            assert await service.send_notification_email(**NOTIFY) is True

        payload = send.call_args.args[0]
        assert payload["to"] == "olivia@example.com"
        assert payload["subject"] == f"Harbour St: {NOTIFY['message']}"
        assert "&lt;Timber&gt;" in payload["html"]
        assert service.unsubscribe_url("unsub-123") in payload["text"]
        assert "Unsubscribe" in payload["html"]
