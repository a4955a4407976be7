"""Tests for decoding the SES notification inside an SNS message."""
from __future__ import annotations

import json

import pytest

from src.services.ses_notifications import NotificationType, decode_payload
from src.utils.sns import DecodeError


def test_decode_strict_bounce(bounce_message):
    notification = decode_payload(json.dumps(bounce_message("a@x.com", '"B" <b@x.com>')))

    assert notification.notification_type is NotificationType.BOUNCE
    assert notification.is_bounce is True
    assert notification.bounce.bounce_type == "Permanent"
    assert notification.bounce.reporting_mta == "dsn; a8-70.smtp-out.amazonses.com"
    assert notification.bounce.bounced_recipients[0].diagnostic_code == "smtp; 550 5.1.1 user unknown"
    assert notification.mail.message_id == "0100018c1a2b3c4d-ses-message-id"
    assert notification.recipient_addresses() == ["a@x.com", '"B" <b@x.com>']


def test_decode_permissive_bounce_fills_defaults():
    notification = decode_payload(
        json.dumps({"notificationType": "Bounce", "bounce": {"bouncedRecipients": [{"emailAddress": "a@x.com"}]}})
    )

    assert notification.bounce.feedback_id == ""
    assert notification.bounce.bounce_sub_type == ""
    assert notification.bounce.timestamp == ""
    assert notification.bounce.remote_mta_ip is None
    assert notification.bounce.bounced_recipients[0].action is None
    assert notification.mail is None
    assert notification.recipient_addresses() == ["a@x.com"]


def test_decode_bounce_without_details():
    notification = decode_payload('{"notificationType": "Bounce"}')

    assert notification.is_bounce is True
    assert notification.bounce is None
    assert notification.recipient_addresses() == []


def test_decode_bounce_with_empty_block_has_no_recipients():
    notification = decode_payload('{"notificationType": "Bounce", "bounce": {}}')

    assert notification.bounce is not None
    assert notification.recipient_addresses() == []


def test_decode_explicit_nulls_fall_back_to_defaults(bounce_message):
    message = bounce_message("a@x.com")
    message["mail"]["sendingAccountId"] = None
    message["bounce"]["bounceSubType"] = None

    notification = decode_payload(json.dumps(message))

    assert notification.mail.sending_account_id == ""
    assert notification.bounce.bounce_sub_type == ""


def test_decode_subscription_succeeded_notice():
    notification = decode_payload(
        json.dumps(
            {
                "notificationType": "AmazonSnsSubscriptionSucceeded",
                "message": "You have successfully subscribed your Amazon SNS topic to receive 'Bounce' notifications.",
            }
        )
    )

    assert notification.notification_type is NotificationType.SUBSCRIPTION_SUCCEEDED
    assert notification.message.startswith("You have successfully subscribed")
    assert notification.is_bounce is False


@pytest.mark.parametrize(
    ("document", "expected"),
    [
        ({"notificationType": "Complaint"}, NotificationType.COMPLAINT),
        ({"notificationType": "Delivery"}, NotificationType.DELIVERY),
        ({"notificationType": "Open"}, NotificationType.IGNORED),
        ({"notificationType": 42}, NotificationType.IGNORED),
        ({"eventType": "Bounce"}, NotificationType.BOUNCE),
        ({}, NotificationType.IGNORED),
    ],
)
def test_decode_notification_types(document, expected):
    assert decode_payload(json.dumps(document)).notification_type is expected


@pytest.mark.parametrize(
    "inner",
    ["", "{not json", "[]", '"Bounce"', '{"notificationType": "Bounce", "bounce": "oops"}'],
)
def test_decode_payload_rejects_malformed_input(inner):
    with pytest.raises(DecodeError):
        decode_payload(inner)


def test_reason_keeps_ses_field_names_and_unknown_fields(bounce_message):
    message = bounce_message("a@x.com")
    message["mail"]["commonHeaders"] = {"subject": "Weekly digest"}

    reason = json.loads(decode_payload(json.dumps(message)).to_reason())

    assert reason["notificationType"] == "Bounce"
    assert reason["bounce"]["reportingMTA"] == "dsn; a8-70.smtp-out.amazonses.com"
    assert reason["bounce"]["bouncedRecipients"][0]["emailAddress"] == "a@x.com"
    assert reason["mail"]["commonHeaders"] == {"subject": "Weekly digest"}
