from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from hangout.core import config
from hangout.core.db import get_db
from hangout.realtime.hub import hub
from hangout.services.broadcaster import PresenceBroadcaster
from hangout.services.checkin import CheckinService
from hangout.services.lifecycle import GatheringLifecycle
from hangout.services.notifier import Notifier
from hangout.services.worker import BackgroundWorker


@lru_cache
def get_broadcaster() -> PresenceBroadcaster:
    return PresenceBroadcaster(hub)


@lru_cache
def get_worker() -> BackgroundWorker:
    return BackgroundWorker(max_workers=config.WORKER_THREADS)


@lru_cache
def get_notifier() -> Notifier:
    return Notifier.from_config()


def get_checkin_service(
    db: Session = Depends(get_db),
    broadcaster: PresenceBroadcaster = Depends(get_broadcaster),
    worker: BackgroundWorker = Depends(get_worker),
    notifier: Notifier = Depends(get_notifier),
) -> CheckinService:
    return CheckinService(db, broadcaster, worker, notifier)


def get_lifecycle(
    db: Session = Depends(get_db),
    broadcaster: PresenceBroadcaster = Depends(get_broadcaster),
) -> GatheringLifecycle:
    return GatheringLifecycle(db, broadcaster)
