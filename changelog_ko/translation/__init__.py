"""Batching, providers, fallback and quality control."""
