"""
Codec Module - Black Box Interface

Purpose: Turn session attribute mappings into a storable value and back
Interface: AttributeCodec.encode(), AttributeCodec.decode()
Hidden: Wire format (canonical JSON)
"""

from .codec import AttributeCodec

__all__ = ["AttributeCodec"]
