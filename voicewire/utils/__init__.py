"""Shared helpers for audio handling and retry timing."""
