"""Kubernetes cluster cleanup.

Removes evicted, failed and completed pods, orphaned completed Jobs and
namespaces stuck in Terminating.
"""

from .cleanup import ClusterCleaner
from .client import ClusterClients, ClusterConnectionError, connect
from .models import CleanupAction, CleanupResult, CleanupTarget, expand_actions

__all__ = [
    "CleanupAction",
    "CleanupResult",
    "CleanupTarget",
    "ClusterCleaner",
    "ClusterClients",
    "ClusterConnectionError",
    "connect",
    "expand_actions",
]
