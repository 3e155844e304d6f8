"""Anime list commands."""
