"""Scheduled release commands."""
