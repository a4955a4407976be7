"""SNS helper utilities for envelope decoding, signature verification and subscriptions."""
from __future__ import annotations

import base64
import binascii
import json
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from pydantic import BaseModel, Field

from src.utils.logger import logger

SIGNATURE_DIGESTS = {"1": "-sha1", "2": "-sha256"}


class DecodeError(ValueError):
    """Raised when an inbound SNS envelope or SES payload cannot be decoded."""


class SnsMessageType(str, Enum):
    SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
    NOTIFICATION = "Notification"


class SnsEnvelope(BaseModel):
    """Outer SNS wrapper around an SES notification or a subscription handshake."""

    kind: SnsMessageType
    message: str | None = None
    subscribe_url: str | None = None
    topic_arn: str | None = None
    message_id: str | None = None
    document: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def is_handshake(self) -> bool:
        return self.kind is SnsMessageType.SUBSCRIPTION_CONFIRMATION


def decode_envelope(raw: bytes | str) -> SnsEnvelope:
    """Parse the raw request body into an :class:`SnsEnvelope`.

    Only the field that matters for the envelope type is kept: ``SubscribeURL``
    for a handshake and ``Message`` for a notification. Anything else raises
    :class:`DecodeError`.
    """
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError("SNS envelope is not valid JSON") from exc
    if not isinstance(document, dict):
        raise DecodeError("SNS envelope must be a JSON object")

    message_type = document.get("Type")
    try:
        kind = SnsMessageType(message_type)
    except ValueError as exc:
        raise DecodeError(f"Unsupported SNS message type: {message_type!r}") from exc

    message = document.get("Message")
    subscribe_url = document.get("SubscribeURL")
    if kind is SnsMessageType.SUBSCRIPTION_CONFIRMATION:
        if not isinstance(subscribe_url, str) or not subscribe_url:
            raise DecodeError("SubscriptionConfirmation without SubscribeURL")
        message = None
    else:
        if not isinstance(message, str) or not message:
            raise DecodeError("Notification without Message body")
        subscribe_url = None

    topic_arn = document.get("TopicArn")
    message_id = document.get("MessageId")
    return SnsEnvelope(
        kind=kind,
        message=message,
        subscribe_url=subscribe_url,
        topic_arn=topic_arn if isinstance(topic_arn, str) else None,
        message_id=message_id if isinstance(message_id, str) else None,
        document=document,
    )


def is_allowed_topic(topic_arn: str | None, allowed_topic_arns: list[str]) -> bool:
    """An empty allowlist accepts every topic."""
    if not allowed_topic_arns:
        return True
    return topic_arn in allowed_topic_arns


def _sns_host_problem(url: str) -> str | None:
    """Return why ``url`` is not an https URL on an SNS endpoint, or None."""
    parsed = urlparse(url)
    if parsed.scheme != "https":
        return "must use https"
    host = parsed.hostname
    if not host:
        return "has no hostname"
    if host != "sns.amazonaws.com" and not (host.startswith("sns.") and host.endswith(".amazonaws.com")):
        return f"points at {host}, which is not an SNS endpoint"
    return None


def is_allowed_cert_url(cert_url: str) -> tuple[bool, str]:
    """SigningCertURL must be an SNS-hosted ``SimpleNotificationService-*`` certificate."""
    problem = _sns_host_problem(cert_url)
    if problem is None and not urlparse(cert_url).path.startswith("/SimpleNotificationService-"):
        problem = "is not an SNS certificate path"
    if problem:
        return False, f"SigningCertURL {problem}"
    return True, "ok"


def is_allowed_subscribe_url(subscribe_url: str) -> tuple[bool, str]:
    """SubscribeURL comes from the request body, so only SNS endpoints are visited."""
    problem = _sns_host_problem(subscribe_url)
    if problem:
        return False, f"SubscribeURL {problem}"
    return True, "ok"


NOTIFICATION_SIGNED_FIELDS = ("Message", "MessageId", "Subject", "Timestamp", "TopicArn", "Type")
SUBSCRIPTION_SIGNED_FIELDS = ("Message", "MessageId", "SubscribeURL", "Timestamp", "Token", "TopicArn", "Type")


def string_to_sign(document: dict[str, Any]) -> str:
    """Canonical ``key\\nvalue\\n`` text SNS signs; absent keys are left out."""
    if document.get("Type") == SnsMessageType.NOTIFICATION.value:
        fields = NOTIFICATION_SIGNED_FIELDS
    else:
        fields = SUBSCRIPTION_SIGNED_FIELDS
    return "".join(f"{field}\n{document[field]}\n" for field in fields if document.get(field) is not None)


def _fetch_url(url: str, timeout_seconds: int) -> bytes:
    with urlopen(Request(url, method="GET"), timeout=timeout_seconds) as response:
        return response.read()


def _run_openssl(args: list[str], timeout_seconds: int) -> subprocess.CompletedProcess:
    return subprocess.run(["openssl", *args], capture_output=True, check=False, timeout=timeout_seconds)


def _openssl_verify(certificate: bytes, signature: bytes, signed: bytes, digest: str, timeout_seconds: int) -> tuple[bool, str]:
    with tempfile.TemporaryDirectory(prefix="sns-signature-") as workdir:
        paths = {name: Path(workdir) / name for name in ("cert.pem", "pubkey.pem", "signed.txt", "signature.bin")}
        paths["cert.pem"].write_bytes(certificate)
        paths["signed.txt"].write_bytes(signed)
        paths["signature.bin"].write_bytes(signature)
        try:
            extracted = _run_openssl(["x509", "-pubkey", "-noout", "-in", str(paths["cert.pem"])], timeout_seconds)
            if extracted.returncode != 0:
                return False, "Certificate has no usable public key"
            paths["pubkey.pem"].write_bytes(extracted.stdout)
            checked = _run_openssl(
                [
                    "dgst", digest,
                    "-verify", str(paths["pubkey.pem"]),
                    "-signature", str(paths["signature.bin"]),
                    str(paths["signed.txt"]),
                ],
                timeout_seconds,
            )
        except FileNotFoundError:
            return False, "openssl is not installed"
        except subprocess.TimeoutExpired:
            return False, "openssl timed out"
    if checked.returncode != 0:
        return False, "Signature verification failed"
    return True, "ok"


def verify_sns_signature(document: dict[str, Any], timeout_seconds: int) -> tuple[bool, str]:
    """Check ``Signature`` against the certificate published at ``SigningCertURL``.

    Returns ``(verified, reason)``. Version 1 signatures use SHA1, version 2
    SHA256. The certificate is downloaded only from SNS hosts.
    """
    digest = SIGNATURE_DIGESTS.get(str(document.get("SignatureVersion")))
    if digest is None:
        return False, "Unsupported SignatureVersion"
    encoded = document.get("Signature")
    cert_url = document.get("SigningCertURL")
    if not isinstance(encoded, str) or not isinstance(cert_url, str) or not encoded or not cert_url:
        return False, "Missing Signature or SigningCertURL"

    allowed, reason = is_allowed_cert_url(cert_url)
    if not allowed:
        return False, reason

    try:
        signature = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return False, "Signature is not valid base64"

    try:
        certificate = _fetch_url(cert_url, timeout_seconds)
    except (OSError, ValueError) as exc:
        logger.warning("Could not download SNS certificate %s: %s", cert_url, exc)
        return False, "Could not download SigningCertURL"

    return _openssl_verify(certificate, signature, string_to_sign(document).encode("utf-8"), digest, timeout_seconds)


def confirm_subscription(subscribe_url: str, timeout_seconds: int) -> bool:
    """Visit the SubscribeURL to complete the SNS handshake. Never raises."""
    allowed, reason = is_allowed_subscribe_url(subscribe_url)
    if not allowed:
        logger.warning("Not confirming SNS subscription: %s", reason)
        return False
    try:
        _fetch_url(subscribe_url, timeout_seconds)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to confirm SNS subscription: %s", exc)
        return False
    return True
