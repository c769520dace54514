"""Borsh binary serialization, deserialization and self-describing schemas."""

__version__ = "0.1.0"