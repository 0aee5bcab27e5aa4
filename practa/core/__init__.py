"""
Practa Core - Shared infrastructure.

This module contains:
- Logging: logger factory and handler setup
"""

__all__ = []
