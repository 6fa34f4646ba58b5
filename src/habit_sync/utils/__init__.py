"""Utility helpers for habit-sync."""
