from unittest.mock import MagicMock, patch

import httpx

from src.notifications.push import PushSender
from src.notifications.sms import SmsSender, is_valid_phone, normalize_phone


def _mock_client(mock_client_cls, response=None, side_effect=None):
    mock_client = MagicMock()
    mock_client.__enter__ = MagicMock(return_value=mock_client)
    mock_client.__exit__ = MagicMock(return_value=False)
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = response
    mock_client_cls.return_value = mock_client
    return mock_client


def _ok_response():
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()
    return response


def _error_response(status_code, text):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "error", request=MagicMock(), response=response
    )
    return response


class TestPhoneValidation:
    def test_normalize_strips_formatting(self):
        assert normalize_phone("+1 (555) 123-4567") == "+15551234567"

    def test_valid_numbers(self):
        assert is_valid_phone("+15551234567")
        assert is_valid_phone("0912 345 678")

    def test_invalid_numbers(self):
        assert not is_valid_phone("")
        assert not is_valid_phone("12345")
        assert not is_valid_phone("call-me-maybe")


class TestSmsSender:
    @patch("src.notifications.sms.get_settings")
    def test_is_configured(self, mock_settings):
        mock_settings.return_value = MagicMock(
            sms_enabled=True,
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
        )
        assert SmsSender.is_configured() is True

    @patch("src.notifications.sms.get_settings")
    def test_not_configured_when_disabled(self, mock_settings):
        mock_settings.return_value = MagicMock(
            sms_enabled=False,
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
        )
        assert SmsSender.is_configured() is False

    @patch("src.notifications.sms.get_settings")
    def test_send_success(self, mock_settings):
        mock_settings.return_value = MagicMock(
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
        )
        sender = SmsSender()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, _ok_response())
            result = sender.send_sms("+1 555 123 4567", "Hello")

        assert result is True
        url = mock_client.post.call_args.args[0]
        assert "/Accounts/AC123/Messages.json" in url
        data = mock_client.post.call_args.kwargs["data"]
        assert data == {"To": "+15551234567", "From": "+15550000000", "Body": "Hello"}
        assert mock_client_cls.call_args.kwargs["auth"] == ("AC123", "secret")

    @patch("src.notifications.sms.get_settings")
    def test_send_http_error(self, mock_settings):
        mock_settings.return_value = MagicMock(
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
        )
        sender = SmsSender()

        with patch("httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _error_response(400, "Invalid 'To' number"))
            result = sender.send_sms("+15551234567", "Hello")

        assert result is False

    @patch("src.notifications.sms.get_settings")
    def test_send_request_error(self, mock_settings):
        mock_settings.return_value = MagicMock(
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
        )
        sender = SmsSender()

        with patch("httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, side_effect=httpx.ConnectError("Connection refused"))
            result = sender.send_sms("+15551234567", "Hello")

        assert result is False


class TestPushSender:
    @patch("src.notifications.push.get_settings")
    def test_is_configured(self, mock_settings):
        mock_settings.return_value = MagicMock(push_webhook_url="https://push.example.com/hook")
        assert PushSender.is_configured() is True

    @patch("src.notifications.push.get_settings")
    def test_not_configured(self, mock_settings):
        mock_settings.return_value = MagicMock(push_webhook_url="")
        assert PushSender.is_configured() is False

    @patch("src.notifications.push.get_settings")
    def test_send_success(self, mock_settings):
        mock_settings.return_value = MagicMock(push_webhook_url="https://push.example.com/hook")
        sender = PushSender()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, _ok_response())
            result = sender.send(5, "Title", "Body", {"campaign_id": 1})

        assert result is True
        assert mock_client.post.call_args.args[0] == "https://push.example.com/hook"
        assert mock_client.post.call_args.kwargs["json"] == {
            "user_id": 5,
            "title": "Title",
            "message": "Body",
            "data": {"campaign_id": 1},
        }

    @patch("src.notifications.push.get_settings")
    def test_send_http_error(self, mock_settings):
        mock_settings.return_value = MagicMock(push_webhook_url="https://push.example.com/hook")
        sender = PushSender()

        with patch("httpx.Client") as mock_client_cls:
            _mock_client(mock_client_cls, _error_response(503, "unavailable"))
            result = sender.send(5, "Title", "Body")

        assert result is False
