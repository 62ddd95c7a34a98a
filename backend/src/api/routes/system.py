"""System routes for index-sync diagnostics."""

import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()

INDEX_SYNC_BUFFER_SIZE = 100

_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class IndexSyncEvent(BaseModel):
    timestamp: str
    level: str
    message: str
    extra: Dict[str, Any]


class IndexSyncLogHandler(logging.Handler):
    """Keeps the most recent index-sync warnings in memory."""

    def __init__(self, maxlen: int = INDEX_SYNC_BUFFER_SIZE) -> None:
        super().__init__(level=logging.WARNING)
        self.buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            extra = {
                k: v for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_KEYS
            }
            self.buffer.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                    "level": record.levelname,
                    "message": self.format(record),
                    "extra": extra,
                }
            )
        except Exception:
            self.handleError(record)

    def events(self) -> List[Dict[str, Any]]:
        return list(self.buffer)


@router.get("/api/system/index-sync", response_model=List[IndexSyncEvent])
async def get_index_sync_events(request: Request):
    """Recent writes that reached the note store but not the search index."""
    return request.app.state.index_sync_handler.events()


__all__ = ["router", "IndexSyncLogHandler", "IndexSyncEvent"]
