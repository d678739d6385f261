"""Services that orchestrate a sync run."""

from src.services.sync_service import SyncReport, SyncService

__all__ = ["SyncReport", "SyncService"]
