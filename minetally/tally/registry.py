"""Worker ownership lookup.

Ownership is declared by worker *name* in the tally config. A worker whose
name no user claims is "unknown": its shares still count toward pool
totals, they just are not attributed to anyone.
"""

from __future__ import annotations

from typing import Iterable

from .models import User, WorkerIdentity


class WorkerRegistry:
    """Maps worker names to the users that own them.

    Users are scanned in configuration order and the first claim wins, so a
    name listed under two users belongs to whichever appears first.
    """

    def __init__(self, users: Iterable[User]):
        self._users: list[User] = list(users)

    @property
    def users(self) -> list[User]:
        return list(self._users)

    @property
    def user_count(self) -> int:
        return len(self._users)

    def resolve_owner(self, worker_name: str) -> User | None:
        """Return the owning user, or None if nobody claims the worker."""
        for user in self._users:
            if user.owns(worker_name):
                return user
        return None

    def is_known(self, worker_name: str) -> bool:
        return self.resolve_owner(worker_name) is not None

    def unknown_workers(self, workers: Iterable[WorkerIdentity]) -> list[WorkerIdentity]:
        """Workers nobody owns, one entry per uid, sorted by name then uid."""
        seen: dict[int, WorkerIdentity] = {}
        for worker in workers:
            if worker.uid in seen or self.is_known(worker.name):
                continue
            seen[worker.uid] = worker
        return sorted(seen.values(), key=lambda w: (w.name, w.uid))


__all__ = ["WorkerRegistry"]
