"""Temporary region access grants."""
