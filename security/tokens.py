import hashlib
import hmac
import secrets


def hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random verification tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token() -> tuple[str, str]:
    """
    Returns (raw_token, token_hash). The raw token goes into the emailed
    link; only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    return raw_token, hash_token(raw_token)


def token_matches(raw_token, token_hash) -> bool:
    if not raw_token or not token_hash or not isinstance(raw_token, str):
        return False
    return hmac.compare_digest(hash_token(raw_token), token_hash)
