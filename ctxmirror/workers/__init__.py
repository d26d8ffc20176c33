"""
Background workers for non-blocking operations.

Provides QThread-based workers for:
- Export of the configuration tree
- Import from an export directory

All workers use Qt signals for thread-safe communication
with the caller's thread.
"""

from ctxmirror.workers.base_worker import (
    BaseWorker,
    CancellableWorker,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from ctxmirror.workers.export_worker import (
    ExportWorker,
    ImportWorker,
)

__all__ = [
    'BaseWorker',
    'CancellableWorker',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    'ExportWorker',
    'ImportWorker',
]
