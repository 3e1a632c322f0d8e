"""Pydantic API schemas (request and response models)."""
