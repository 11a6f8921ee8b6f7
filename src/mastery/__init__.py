"""Mastery review backend: SM-2 spaced-repetition scheduling for learned concepts."""

__version__ = "0.1.0"
