"""
Background polling of external suite runs.

One RunPoller owns a map of run key -> PollHandle. Starting a poll for a key
that is already polled replaces the old handle, so at most one loop per run
is ever active. Each loop sleeps, fetches the status, hands it to the
update callback and stops on a terminal status, on a fetch failure, after
max_polls iterations, or when stopped explicitly.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import PollingConfig, get_config
from app.core.datetime_utils import utc_now
from app.core.errors import UpstreamServiceError
from app.core.logging import get_logger
from app.history.reconciler import save_run_snapshot

logger = get_logger(__name__)

FetchStatus = Callable[[], Awaitable[dict[str, Any]]]
OnUpdate = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class PollHandle:
    """A running poll loop for one run."""

    run_key: str
    started_at: datetime = field(default_factory=utc_now)
    polls: int = 0
    last_status: str | None = None
    task: asyncio.Task | None = None

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()

    def cancel(self) -> None:
        if self.task and not self.task.done():
            self.task.cancel()


def fetch_failure_update(error: Exception) -> dict[str, Any]:
    """Synthetic terminal update emitted once when a status fetch fails."""
    return {
        "status": "error",
        "conclusion": "failure",
        "logs": str(error),
        "message": "Failed to fetch run status",
    }


class RunPoller:
    """Keeps at most one status poll loop per run key."""

    def __init__(
        self,
        interval_seconds: float = 5.0,
        max_polls: int = 720,
        terminal_statuses: list[str] | tuple[str, ...] = ("completed", "error"),
    ) -> None:
        self.interval_seconds = interval_seconds
        self.max_polls = max_polls
        self.terminal_statuses = set(terminal_statuses)
        self._handles: dict[str, PollHandle] = {}

    @classmethod
    def from_config(cls, config: PollingConfig) -> "RunPoller":
        return cls(
            interval_seconds=config.interval_seconds,
            max_polls=config.max_polls,
            terminal_statuses=config.terminal_statuses,
        )

    @property
    def active_runs(self) -> list[str]:
        return [key for key, handle in self._handles.items() if not handle.done]

    def is_polling(self, run_key: str) -> bool:
        handle = self._handles.get(str(run_key))
        return handle is not None and not handle.done

    def get(self, run_key: str) -> PollHandle | None:
        return self._handles.get(str(run_key))

    def start(self, run_key: str, fetch_status: FetchStatus, on_update: OnUpdate) -> PollHandle:
        """
        Start polling a run, replacing any existing loop for the same key.

        Must be called from within a running event loop.
        """
        run_key = str(run_key)
        self.stop(run_key)

        handle = PollHandle(run_key=run_key)
        handle.task = asyncio.create_task(
            self._poll(handle, fetch_status, on_update), name=f"run-poll-{run_key}"
        )
        self._handles[run_key] = handle

        logger.bind(run_key=run_key, interval=self.interval_seconds).info("run_poll_started")
        return handle

    def stop(self, run_key: str) -> bool:
        """Cancel the loop for a run. Returns True if one was active."""
        handle = self._handles.pop(str(run_key), None)
        if handle is None:
            return False

        was_active = not handle.done
        handle.cancel()
        if was_active:
            logger.bind(run_key=run_key, polls=handle.polls).info("run_poll_stopped")
        return was_active

    async def stop_all(self) -> None:
        """Cancel every loop and wait for them to finish (used on shutdown)."""
        handles = list(self._handles.values())
        self._handles.clear()

        for handle in handles:
            handle.cancel()
        tasks = [h.task for h in handles if h.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.bind(count=len(tasks)).info("run_polls_stopped")

    async def _deliver(self, handle: PollHandle, on_update: OnUpdate, update: dict[str, Any]) -> None:
        try:
            await on_update(update)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Persistence problems must not kill the loop
            logger.bind(run_key=handle.run_key, error=str(e)).error("run_poll_update_failed")

    async def _poll(self, handle: PollHandle, fetch_status: FetchStatus, on_update: OnUpdate) -> None:
        try:
            while handle.polls < self.max_polls:
                await asyncio.sleep(self.interval_seconds)

                try:
                    update = await fetch_status()
                    if not isinstance(update, dict):
                        raise UpstreamServiceError(
                            f"Unexpected run status payload: {type(update).__name__}"
                        )
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.bind(run_key=handle.run_key, error=str(e)).warning("run_poll_fetch_failed")
                    handle.last_status = "error"
                    await self._deliver(handle, on_update, fetch_failure_update(e))
                    return

                handle.polls += 1
                handle.last_status = update.get("status")
                await self._deliver(handle, on_update, update)

                if handle.last_status in self.terminal_statuses:
                    logger.bind(
                        run_key=handle.run_key,
                        status=handle.last_status,
                        conclusion=update.get("conclusion"),
                        polls=handle.polls,
                    ).info("run_poll_finished")
                    return

            logger.bind(run_key=handle.run_key, polls=handle.polls).warning("run_poll_limit_reached")
        finally:
            if self._handles.get(handle.run_key) is handle:
                del self._handles[handle.run_key]


def snapshot_writer(
    session_factory: async_sessionmaker[AsyncSession],
    project_id: str,
    suite_id: str,
    run_id: str,
    history_id: str | None = None,
    owner_id: str | None = None,
    github_context: dict[str, Any] | None = None,
) -> OnUpdate:
    """
    Build an update callback that persists each polled status.

    Every update opens and commits its own session, independent of the
    request that started the poll.
    """

    async def write(update: dict[str, Any]) -> None:
        run_data = {**update, "run_id": update.get("run_id") or run_id}
        async with session_factory() as session:
            try:
                await save_run_snapshot(
                    session,
                    project_id=project_id,
                    suite_id=suite_id,
                    run_data=run_data,
                    history_id=history_id,
                    owner_id=owner_id,
                    github_context=github_context,
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return write


@lru_cache
def get_run_poller() -> RunPoller:
    """Process-wide poller configured from config.yml."""
    return RunPoller.from_config(get_config().polling)
