"""Backup, export and import commands."""
