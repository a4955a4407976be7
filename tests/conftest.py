"""Shared fixtures: an in-memory blacklist database and SNS/SES sample builders."""
from __future__ import annotations

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from src.db import models
from src.db.blacklist_store import SQLiteBlacklistStore

TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:ses-bounces"


def _make_engine(create_tables: bool = True):
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if create_tables:
        models.Base.metadata.create_all(bind=engine)
    return engine


def _bounce_message(*addresses: str) -> dict:
    return {
        "notificationType": "Bounce",
        "bounce": {
            "feedbackId": "0100018c1a2b3c4d-5e6f7a8b-0000-0000-0000-000000000000-000000",
            "bounceType": "Permanent",
            "bounceSubType": "General",
            "bouncedRecipients": [
                {
                    "emailAddress": address,
                    "action": "failed",
                    "status": "5.1.1",
                    "diagnosticCode": "smtp; 550 5.1.1 user unknown",
                }
                for address in addresses
            ],
            "timestamp": "2026-10-17T08:00:00.000Z",
            "reportingMTA": "dsn; a8-70.smtp-out.amazonses.com",
            "remoteMtaIp": "127.0.2.0",
        },
        "mail": {
            "timestamp": "2026-10-17T07:59:58.000Z",
            "source": "news@sender.example",
            "sourceArn": "arn:aws:ses:us-east-1:123456789012:identity/sender.example",
            "sourceIp": "127.0.3.0",
            "callerIdentity": "ses-sender",
            "sendingAccountId": "123456789012",
            "messageId": "0100018c1a2b3c4d-ses-message-id",
            "destination": list(addresses),
        },
    }


def _sns_body(message: dict | str, **fields) -> bytes:
    envelope = {
        "Type": "Notification",
        "MessageId": "22b80b92-fdea-4c2c-8f9d-bdfb0c7bf324",
        "TopicArn": TOPIC_ARN,
        "Message": message if isinstance(message, str) else json.dumps(message),
        "Timestamp": "2026-10-17T08:00:01.000Z",
        "SignatureVersion": "1",
        "Signature": "dGVzdA==",
        "SigningCertURL": "https://sns.us-east-1.amazonaws.com/SimpleNotificationService-test.pem",
    }
    envelope.update(fields)
    return json.dumps(envelope).encode("utf-8")


def _handshake_body(**fields) -> bytes:
    envelope = {
        "Type": "SubscriptionConfirmation",
        "MessageId": "165545c9-2a5c-472c-8df2-7ff2be2b3b1b",
        "Token": "2336412f37fb687f5d51e6e241d09c805a5a57b30d712f794cc5f6a988666d92768dd60a",
        "TopicArn": TOPIC_ARN,
        "Message": "You have chosen to subscribe to the topic. To confirm the subscription, visit the SubscribeURL.",
        "SubscribeURL": "https://sns.us-east-1.amazonaws.com/?Action=ConfirmSubscription&TopicArn=ses-bounces",
        "Timestamp": "2026-10-17T07:00:00.000Z",
    }
    envelope.update(fields)
    return json.dumps(envelope).encode("utf-8")


@pytest.fixture
def engine():
    engine = _make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def empty_engine():
    """An engine whose database has no blacklist table, so every statement fails."""
    engine = _make_engine(create_tables=False)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SQLiteBlacklistStore(engine)


@pytest.fixture
def blacklist_rows(engine):
    def rows() -> list[tuple[int, str]]:
        with engine.connect() as conn:
            result = conn.execute(
                models.BlacklistEntry.__table__.select().order_by(models.BlacklistEntry.id)
            )
            return [(row.tenant_id, row.email) for row in result]

    return rows


@pytest.fixture
def bounce_message():
    return _bounce_message


@pytest.fixture
def sns_body():
    return _sns_body


@pytest.fixture
def handshake_body():
    return _handshake_body
