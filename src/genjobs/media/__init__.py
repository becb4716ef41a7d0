"""Temporary artifact storage and placeholder thumbnails."""
