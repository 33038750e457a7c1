"""Core configuration and user preference storage."""
