from unittest.mock import MagicMock

from src.models import NotificationType
from src.notifications.formatter import (
    campaign_progress,
    format_campaign_expired,
    format_invitation_sms,
    format_low_progress_warning,
    format_milestone_alert,
    format_progress_alert,
)


def _make_campaign(current_amount=0, goal_amount=100, title="Clean Water"):
    campaign = MagicMock()
    campaign.id = 7
    campaign.title = title
    campaign.current_amount = current_amount
    campaign.goal_amount = goal_amount
    return campaign


class TestCampaignProgress:
    def test_percentage_of_goal(self):
        assert campaign_progress(_make_campaign(25, 100)) == 25.0

    def test_over_funded_not_clamped(self):
        assert campaign_progress(_make_campaign(300, 200)) == 150.0

    def test_zero_goal(self):
        assert campaign_progress(_make_campaign(50, 0)) is None

    def test_missing_amount_counts_as_zero(self):
        assert campaign_progress(_make_campaign(None, 100)) == 0.0


class TestFormatProgressAlert:
    def test_substitutes_progress(self):
        result = format_progress_alert(
            _make_campaign(), "Your campaign is at {progress}% of its goal", 33.333
        )
        assert result["type"] == NotificationType.progress_alert
        assert result["message"] == "Your campaign is at 33.3% of its goal"
        assert result["data"] == {"campaign_id": 7}

    def test_template_without_placeholder(self):
        result = format_progress_alert(_make_campaign(), "Keep going!", 50)
        assert result["message"] == "Keep going!"


class TestFormatLowProgressWarning:
    def test_message_and_data(self):
        result = format_low_progress_warning(_make_campaign(title="Books"), 12.345)
        assert result["type"] == NotificationType.low_progress_warning
        assert '"Books"' in result["message"]
        assert "25%" in result["message"]
        assert result["data"]["progress"] == 12.3


class TestFormatCampaignExpired:
    def test_message(self):
        result = format_campaign_expired(_make_campaign(title="Books"))
        assert result["type"] == NotificationType.campaign_expired
        assert result["message"] == '"Books" has ended'


class TestFormatMilestoneAlert:
    def test_template(self):
        result = format_milestone_alert(3, 50, "Reached {milestone}%!")
        assert result["message"] == "Reached 50%!"
        assert result["data"] == {"campaign_id": 3, "milestone": 50}

    def test_fallback_message(self):
        result = format_milestone_alert(3, 75, "")
        assert result["message"] == "Congratulations! 75% achieved!"


class TestFormatInvitationSms:
    def test_named_invitee_with_campaign(self):
        text = format_invitation_sms("Alice", "Bob", "Books")
        assert text == 'Hi Bob, Alice has invited you to support "Books".'

    def test_anonymous_invitee(self):
        text = format_invitation_sms("Alice", None)
        assert text.startswith("Hi, Alice has invited you")
