"""
Table Module - Black Box Interface

Purpose: Provision and tear down the session table
Interface: create_table(), describe_table(), delete_table()
Hidden: Key layout of table metadata

Not on the request path; used from the CLI and deployment tooling.
"""

from .admin import ACTIVE, TableAdmin

__all__ = ["ACTIVE", "TableAdmin"]
