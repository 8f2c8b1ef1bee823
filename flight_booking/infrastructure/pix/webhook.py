import hashlib
import hmac
import os


def webhook_secret() -> str | None:
    return os.getenv("PIX_WEBHOOK_SECRET") or None


def sign_payload(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign_payload(secret, body), signature.strip().lower())
