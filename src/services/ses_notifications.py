"""Typed view of the SES notification carried inside an SNS ``Message``.

SES has shipped more than one shape of this document over time. Older topics
always include the full bounce block, newer ones may omit any of it and add a
``AmazonSnsSubscriptionSucceeded`` notice with a free-text ``message``. Both are
decoded into the same models below: every field has a default, unknown
``notificationType`` values collapse into ``Ignored`` and unknown keys are kept
so the serialized notification stays a faithful copy of what SES delivered.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.utils.sns import DecodeError


class NotificationType(str, Enum):
    BOUNCE = "Bounce"
    COMPLAINT = "Complaint"
    DELIVERY = "Delivery"
    SUBSCRIPTION_SUCCEEDED = "AmazonSnsSubscriptionSucceeded"
    IGNORED = "Ignored"

    @classmethod
    def _missing_(cls, value: object) -> "NotificationType":
        return cls.IGNORED


class SesModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # SES sends explicit nulls (e.g. sendingAccountId); fall back to defaults.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class BouncedRecipient(SesModel):
    email_address: str = ""
    action: Optional[str] = None
    status: Optional[str] = None
    diagnostic_code: Optional[str] = None


class BounceDetail(SesModel):
    feedback_id: str = ""
    bounce_type: str = ""
    bounce_sub_type: str = ""
    bounced_recipients: List[BouncedRecipient] = Field(default_factory=list)
    timestamp: str = ""
    reporting_mta: Optional[str] = Field(default=None, alias="reportingMTA")
    remote_mta_ip: Optional[str] = None


class MailMeta(SesModel):
    timestamp: str = ""
    source: str = ""
    source_arn: str = ""
    source_ip: str = ""
    caller_identity: str = ""
    sending_account_id: str = ""
    message_id: str = ""
    destination: List[str] = Field(default_factory=list)


class SesNotification(SesModel):
    notification_type: NotificationType = Field(
        default=NotificationType.IGNORED,
        validation_alias=AliasChoices("notificationType", "eventType", "notification_type"),
        serialization_alias="notificationType",
    )
    bounce: Optional[BounceDetail] = None
    mail: Optional[MailMeta] = None
    message: Optional[str] = None

    @field_validator("notification_type", mode="before")
    @classmethod
    def coerce_notification_type(cls, value: Any) -> NotificationType:
        if isinstance(value, NotificationType):
            return value
        return NotificationType(value) if isinstance(value, str) else NotificationType.IGNORED

    @property
    def is_bounce(self) -> bool:
        return self.notification_type is NotificationType.BOUNCE

    def recipient_addresses(self) -> list[str]:
        """Raw bounced addresses in payload order; empty when the bounce block is absent."""
        if self.bounce is None:
            return []
        return [recipient.email_address for recipient in self.bounce.bounced_recipients]

    def to_reason(self) -> str:
        """Compact JSON using SES field names, stored alongside each blacklist entry."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


def decode_payload(inner: str | bytes) -> SesNotification:
    """Decode the SNS ``Message`` string into a :class:`SesNotification`."""
    try:
        document = json.loads(inner)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError("SES notification is not valid JSON") from exc
    if not isinstance(document, dict):
        raise DecodeError("SES notification must be a JSON object")

    try:
        return SesNotification.model_validate(document)
    except ValidationError as exc:
        raise DecodeError(f"SES notification has unexpected field types: {exc.error_count()} error(s)") from exc
