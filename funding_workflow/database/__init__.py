"""Persistence for publication state."""

from .client import PUBLICATIONS_TABLE, PublicationLatchStore, SupabaseClient

__all__ = ["PUBLICATIONS_TABLE", "PublicationLatchStore", "SupabaseClient"]
