"""Provider channels with mocked SendGrid client / requests session."""

from unittest.mock import MagicMock

import pytest
import requests

from parafort.core.config import Settings
from parafort.core.exceptions import DeliveryFailure
from parafort.services.channels import (
    TELNYX_MESSAGES_URL,
    DashboardChannel,
    LogOnlyChannel,
    SendGridEmailChannel,
    TelnyxSmsChannel,
    build_channels,
)


def test_sendgrid_accepted():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=202)
    channel = SendGridEmailChannel("SG.key", "compliance@parafort.com", "ParaFort", client=client)

    result = channel.send("owner@example.com", "Subject", "Body")

    assert result.delivered is True
    assert client.send.call_count == 1


def test_sendgrid_sends_plain_and_html_parts():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=202)
    channel = SendGridEmailChannel("SG.key", "compliance@parafort.com", "ParaFort", client=client)

    channel.send("owner@example.com", "Subject", "Body", html="<p>Body</p>")

    mail = client.send.call_args[0][0].get()
    assert [c["type"] for c in mail["content"]] == ["text/plain", "text/html"]
    assert mail["content"][1]["value"] == "<p>Body</p>"


def test_sendgrid_rejected_status_is_not_delivered():
    client = MagicMock()
    client.send.return_value = MagicMock(status_code=400)
    result = SendGridEmailChannel("SG.key", "from@parafort.com", client=client).send("a@b.test", "S", "B")
    assert result.delivered is False
    assert "400" in result.error


def test_sendgrid_exception_becomes_delivery_failure():
    client = MagicMock()
    client.send.side_effect = RuntimeError("401 Unauthorized")
    channel = SendGridEmailChannel("SG.key", "from@parafort.com", client=client)
    with pytest.raises(DeliveryFailure):
        channel.send("a@b.test", "S", "B")


def test_sendgrid_without_recipient():
    client = MagicMock()
    result = SendGridEmailChannel("SG.key", "from@parafort.com", client=client).send(None, "S", "B")
    assert result.delivered is False
    client.send.assert_not_called()


def test_telnyx_posts_message():
    session = MagicMock()
    session.post.return_value = MagicMock(ok=True, status_code=200)
    channel = TelnyxSmsChannel("KEY123", "+15550000000", "profile-1", session=session)

    result = channel.send("+15551112222", "ignored subject", "Annual fee due tomorrow")

    assert result.delivered is True
    args, kwargs = session.post.call_args
    assert args[0] == TELNYX_MESSAGES_URL
    assert kwargs["json"] == {
        "from": "+15550000000",
        "to": "+15551112222",
        "text": "Annual fee due tomorrow",
        "messaging_profile_id": "profile-1",
    }
    assert kwargs["headers"]["Authorization"] == "Bearer KEY123"


def test_telnyx_error_response():
    session = MagicMock()
    session.post.return_value = MagicMock(ok=False, status_code=422, reason="Unprocessable Entity")
    result = TelnyxSmsChannel("KEY", "+15550000000", session=session).send("+1555", "S", "B")
    assert result.delivered is False
    assert result.error == "SMS sending failed: 422 Unprocessable Entity"


def test_telnyx_network_error():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(DeliveryFailure):
        TelnyxSmsChannel("KEY", "+15550000000", session=session).send("+1555", "S", "B")


def test_missing_credentials_degrade_to_log_only():
    channels = build_channels(Settings(notify_channels=("email", "sms")))
    assert isinstance(channels["email"], LogOnlyChannel)
    assert isinstance(channels["sms"], LogOnlyChannel)
    assert isinstance(channels["dashboard"], DashboardChannel)
    assert channels["email"].send("a@b.test", "S", "B").delivered is True


def test_configured_channels():
    settings = Settings(
        notify_channels=("email",),
        sendgrid_api_key="SG.test-key",
        telnyx_api_key="KEY",
        telnyx_phone_number="+15550000000",
    )
    channels = build_channels(settings)
    assert isinstance(channels["email"], SendGridEmailChannel)
    assert "sms" not in channels
    assert isinstance(build_channels(settings, ["sms"])["sms"], TelnyxSmsChannel)
