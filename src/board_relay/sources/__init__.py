"""
Source handlers.

Components:
- base.py: Source contract, SourceConfig, SourceDescriptor
- manager.py: SourceRegistry (type name -> descriptor) and SourceManager
- issues.py: tracker issue synchronization
- publish.py: quota-limited scheduled publishing
- discourse.py: forum threads -> cards
- scheduler.py: polling loop that runs per-cycle work
"""

from .base import Source, SourceConfig, SourceDescriptor
from .manager import SourceManager, SourceRegistry, default_registry

__all__ = [
    "Source",
    "SourceConfig",
    "SourceDescriptor",
    "SourceManager",
    "SourceRegistry",
    "default_registry",
]
