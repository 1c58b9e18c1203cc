"""Shared Pydantic schemas for the agency portal server and client codegen."""
