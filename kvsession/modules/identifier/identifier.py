import hashlib
import hmac
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import MissingSecretKey

# Never appears in hex output, so splitting a signed id is unambiguous
SEPARATOR = "--"


class VerificationStatus(str, Enum):
    """Outcome of verifying a client-presented session id."""

    MISSING = "missing"
    INVALID = "invalid"
    VALID = "valid"


@dataclass(frozen=True)
class Verification:
    """Result of SessionIdentifier.verify()."""

    status: VerificationStatus
    token: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.VALID


class SessionIdentifier:
    """
    Generates and verifies HMAC-signed session ids.

    An id has the form ``<hex hmac-sha256 of token>--<token>``. The full id is
    what the client holds and what keys the session record.
    """

    def __init__(self, secret_key: Optional[str], token_bytes: int = 16):
        """
        Initialize the identifier.

        Args:
            secret_key: Key used to sign ids
            token_bytes: Random bytes per token (hex encoded, so twice as many chars)

        Raises:
            MissingSecretKey: If no secret key is given
        """
        if not secret_key:
            raise MissingSecretKey()
        self._key = secret_key.encode("utf-8") if isinstance(secret_key, str) else secret_key
        self.token_bytes = token_bytes

    def sign(self, token: str) -> str:
        """Return the hex HMAC-SHA256 signature of a token."""
        return hmac.new(self._key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate(self) -> str:
        """Create a new signed session id."""
        token = secrets.token_hex(self.token_bytes)
        return f"{self.sign(token)}{SEPARATOR}{token}"

    def verify(self, session_id: Optional[str]) -> Verification:
        """
        Verify a client-presented session id.

        Args:
            session_id: Id from the client, or None when nothing was presented

        Returns:
            Verification with status MISSING, INVALID or VALID (and the token)
        """
        if not session_id:
            return Verification(VerificationStatus.MISSING)

        parts = session_id.split(SEPARATOR)
        if len(parts) != 2 or not all(parts):
            return Verification(VerificationStatus.INVALID)

        digest, token = parts
        if not hmac.compare_digest(digest.encode("utf-8"), self.sign(token).encode("utf-8")):
            return Verification(VerificationStatus.INVALID)

        return Verification(VerificationStatus.VALID, token)
