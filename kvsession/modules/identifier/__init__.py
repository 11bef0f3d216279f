"""
Identifier Module - Black Box Interface

Purpose: Issue unguessable, tamper-evident session ids
Interface: generate(), verify(), sign()
Hidden: Token format, HMAC algorithm, separator

An unverifiable id is never used as a store key.
"""

from .identifier import SEPARATOR, SessionIdentifier, Verification, VerificationStatus

__all__ = ["SEPARATOR", "SessionIdentifier", "Verification", "VerificationStatus"]
