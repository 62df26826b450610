"""Milestone & time-tracking progress engine for brand/influencer proposals."""

__version__ = "1.0.0"
