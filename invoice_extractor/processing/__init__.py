"""Reconciliation of extracted totals and sequential batch processing."""

from .validator import TOLERANCE, reconcile

__all__ = ["TOLERANCE", "reconcile"]
