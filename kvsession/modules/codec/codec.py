import json
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import JsonValue, TypeAdapter, ValidationError

from ..errors import CorruptSessionData, UnsupportedSessionValue

_SESSION_ADAPTER = TypeAdapter(Dict[str, JsonValue])


class AttributeCodec:
    """
    Encode a session attribute mapping into a single storable value and back.

    The value domain is closed: null, bool, int, float, str, list and dict
    with string keys. Encoding is canonical JSON so that equal values always
    produce identical bytes, which change detection relies on.
    """

    encoding = "utf-8"

    def encode(self, value: Mapping[str, Any]) -> bytes:
        """
        Serialize a session mapping.

        Args:
            value: Session attributes

        Returns:
            Canonical UTF-8 JSON bytes

        Raises:
            UnsupportedSessionValue: If the value contains anything outside the domain
        """
        try:
            validated = _SESSION_ADAPTER.validate_python(value)
            text = json.dumps(
                validated,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except (ValidationError, ValueError) as e:
            raise UnsupportedSessionValue(f"Session value cannot be serialized: {e}") from e
        return text.encode(self.encoding)

    def decode(self, data: Optional[Union[bytes, str]]) -> Dict[str, Any]:
        """
        Deserialize stored session data.

        Args:
            data: Stored bytes (or str, when the client decodes responses)

        Returns:
            Session attributes; empty dict when nothing was stored

        Raises:
            CorruptSessionData: If the data is not a valid encoded mapping
        """
        if not data:
            return {}
        try:
            text = data.decode(self.encoding) if isinstance(data, bytes) else data
            value = json.loads(text, parse_constant=_reject_constant)
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptSessionData(f"Stored session data is malformed: {e}") from e
        if not isinstance(value, dict):
            raise CorruptSessionData(
                f"Stored session data must be a mapping, got {type(value).__name__}"
            )
        return value

    def encode_shadow(self, value: Any) -> str:
        """Column form of a shadow attribute: strings as-is, everything else as JSON."""
        if isinstance(value, str):
            return value
        try:
            return json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise UnsupportedSessionValue(f"Shadow value cannot be serialized: {e}") from e

    @staticmethod
    def as_bytes(data: Optional[Union[bytes, str]]) -> Optional[bytes]:
        """Normalize stored data to bytes so encoded bodies compare equal."""
        if data is None or isinstance(data, bytes):
            return data
        return data.encode(AttributeCodec.encoding)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is outside the session value domain")
