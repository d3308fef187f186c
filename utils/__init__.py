"""Shared utilities: logging, LLM client, cost tracking and retry."""
