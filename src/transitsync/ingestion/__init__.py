"""Ingestion helpers.

Converts raw upstream payloads into the records the state layer publishes.
"""
