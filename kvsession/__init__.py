"""
kvsession - Key-value backed server-side sessions

Maps an HMAC-signed session id to a mutable attribute bag stored in Redis,
with pluggable concurrency control.

Modules:
- identifier: Signed session id generation and verification
- codec: Session attribute serialization
- storage: Key-value store clients (Redis, in-memory)
- locking: Null and pessimistic locking strategies
- middleware: Per-request session middleware for FastAPI
- table: Session table provisioning
- errors: Error taxonomy and pluggable error handler
"""

__version__ = "1.0.0"
