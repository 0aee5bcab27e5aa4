"""
Practa Template - Keeping a project in step with the shared template.

This module handles:
- Semantic version comparison
- Local git HEAD resolution
- The upstream template REST client
- Sync status tracking and upstream updates
"""

__all__ = []
