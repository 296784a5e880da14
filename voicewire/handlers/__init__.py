"""Inbound event routing."""
