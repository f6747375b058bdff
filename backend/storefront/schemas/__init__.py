"""Pydantic request/response schemas (API contracts)."""
