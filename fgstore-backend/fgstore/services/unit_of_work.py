import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from fgstore.core.observability import log_event


class UnitOfWork:
    """
    Stages writes on one session so a commit applies all of them or none.
    Follow-up tasks queued with `after_commit` run only once the commit succeeded;
    they are best-effort and their failures are logged, never raised.
    """

    def __init__(self, db: Session):
        self.db = db
        self._follow_ups: list[tuple[str, Callable[[], Any]]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()

    def add(self, instance: Any) -> Any:
        self.db.add(instance)
        return instance

    def after_commit(self, name: str, task: Callable[[], Any]) -> None:
        self._follow_ups.append((name, task))

    def rollback(self) -> None:
        self.db.rollback()
        self._follow_ups.clear()

    def commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.rollback()
            raise

        follow_ups, self._follow_ups = self._follow_ups, []
        for name, task in follow_ups:
            try:
                task()
            except Exception as exc:  # noqa: BLE001 - follow-ups never undo the committed work
                self.db.rollback()
                log_event("follow_up_failed", level=logging.ERROR, task=name, error=str(exc))
