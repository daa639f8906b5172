"""Pydantic schemas for JSON payloads at the storage boundary."""
