"""Survey records -- local editing and synchronization with the remote CRM.

Provides:
- SurveyRepository: create/edit/list/delete surveys with sync status bookkeeping
- SyncReconciler: push unsynced surveys and record per-record outcomes
"""

from src.fieldsync.surveys.repository import SurveyRepository
from src.fieldsync.surveys.sync import SyncReconciler, SyncResult

__all__ = [
    "SurveyRepository",
    "SyncReconciler",
    "SyncResult",
]
