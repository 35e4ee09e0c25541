"""
Persistence layer for Agent Foreman.
"""

from .document_store import DocumentStore

__all__ = ['DocumentStore']
