"""Operational helpers for AWS role assumption and Kubernetes cluster cleanup."""

from .version import __version__

__all__ = ["__version__"]
