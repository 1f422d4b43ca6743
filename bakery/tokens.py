# bakery/tokens.py
from __future__ import annotations

import hashlib
import hmac
import secrets

# No 0/O or 1/I: codes get read out over the counter.
PUBLIC_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
EDIT_TOKEN_BYTES = 24


def generate_public_code(length: int = 6) -> str:
    return "".join(secrets.choice(PUBLIC_CODE_ALPHABET) for _ in range(length))


def generate_edit_token() -> str:
    """Opaque URL-safe secret, handed to the customer once in their edit link."""
    return secrets.token_urlsafe(EDIT_TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(token: str, stored_hash: str) -> bool:
    return hmac.compare_digest(hash_token(token), stored_hash or "")
