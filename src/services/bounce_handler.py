"""Bounce ingestion: turns SNS deliveries into blacklist entries."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.core.config import Settings
from src.db.blacklist_store import BlacklistStore, ConflictError, StorageError
from src.services.ses_notifications import SesNotification, decode_payload
from src.utils.addresses import normalize_address
from src.utils.logger import logger
from src.utils.sns import (
    DecodeError,
    SnsEnvelope,
    confirm_subscription,
    decode_envelope,
    is_allowed_topic,
    verify_sns_signature,
)


class IngestStatus(str, Enum):
    NOOP = "noop"
    SUCCESS = "success"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    REJECTED = "rejected"


class IngestResult(BaseModel):
    status: IngestStatus
    message: Optional[str] = None
    blacklisted: List[str] = Field(default_factory=list)


class BounceIngestor:
    """Decode an SNS request and blacklist the bounced recipients it reports.

    Recipients are inserted in payload order and the loop stops at the first
    conflict or storage failure. Earlier recipients stay persisted, later ones
    are not attempted until SNS redelivers the notification.
    """

    def __init__(
        self,
        store: BlacklistStore,
        *,
        timeout_seconds: int = 5,
        confirm_subscriptions: bool = True,
        verify_signatures: bool = False,
        allowed_topic_arns: list[str] | None = None,
    ) -> None:
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.confirm_subscriptions = confirm_subscriptions
        self.verify_signatures = verify_signatures
        self.allowed_topic_arns = list(allowed_topic_arns or [])

    @classmethod
    def from_settings(cls, store: BlacklistStore, config: Settings) -> "BounceIngestor":
        return cls(
            store,
            timeout_seconds=config.sns_timeout_seconds,
            confirm_subscriptions=config.sns_confirm_subscriptions,
            verify_signatures=config.sns_verify_signatures,
            allowed_topic_arns=config.sns_allowed_topic_arns,
        )

    def ingest(self, tenant_id: int, raw: bytes) -> IngestResult:
        try:
            envelope = decode_envelope(raw)
        except DecodeError as exc:
            # SNS retries anything but 2xx and a malformed body never becomes valid.
            logger.warning("Ignoring undecodable SNS request for tenant %s: %s", tenant_id, exc)
            return IngestResult(status=IngestStatus.NOOP)

        if not is_allowed_topic(envelope.topic_arn, self.allowed_topic_arns):
            logger.warning("Ignoring SNS message from unexpected topic %s", envelope.topic_arn)
            return IngestResult(status=IngestStatus.NOOP)

        if self.verify_signatures:
            verified, reason = verify_sns_signature(envelope.document, self.timeout_seconds)
            if not verified:
                logger.warning("Rejecting SNS message %s: %s", envelope.message_id, reason)
                return IngestResult(status=IngestStatus.REJECTED, message=reason)

        if envelope.is_handshake:
            self._confirm(envelope)
            return IngestResult(status=IngestStatus.NOOP)

        try:
            notification = decode_payload(envelope.message or "")
        except DecodeError as exc:
            logger.error("Dropping SNS message %s with undecodable payload: %s", envelope.message_id, exc)
            return IngestResult(status=IngestStatus.NOOP)

        if not notification.is_bounce:
            logger.info("Ignoring %s notification for tenant %s", notification.notification_type.value, tenant_id)
            return IngestResult(status=IngestStatus.NOOP)
        if notification.bounce is None:
            logger.info("Bounce notification without bounce details for tenant %s", tenant_id)
            return IngestResult(status=IngestStatus.NOOP)

        return self._persist(tenant_id, notification)

    def _confirm(self, envelope: SnsEnvelope) -> None:
        if not self.confirm_subscriptions:
            logger.info("Confirm the subscription by visiting: %s", envelope.subscribe_url)
            return
        if confirm_subscription(envelope.subscribe_url or "", self.timeout_seconds):
            logger.info("Confirmed SNS subscription for topic %s", envelope.topic_arn)

    def _persist(self, tenant_id: int, notification: SesNotification) -> IngestResult:
        reason = notification.to_reason()
        blacklisted: list[str] = []
        for raw_address in notification.recipient_addresses():
            email = normalize_address(raw_address)
            if not email:
                logger.warning("Skipping blank bounced recipient for tenant %s", tenant_id)
                continue
            try:
                self.store.insert(tenant_id, email, reason)
            except ConflictError as exc:
                logger.info("%s; stopping after %d new entries", exc, len(blacklisted))
                return IngestResult(status=IngestStatus.CONFLICT, message=str(exc), blacklisted=blacklisted)
            except StorageError as exc:
                logger.exception("Failed to blacklist %s for tenant %s", email, tenant_id)
                return IngestResult(status=IngestStatus.SERVER_ERROR, message=str(exc), blacklisted=blacklisted)
            blacklisted.append(email)

        logger.info("Got bounce notification: %s for tenant %s", blacklisted, tenant_id)
        return IngestResult(status=IngestStatus.SUCCESS, blacklisted=blacklisted)
