import asyncio
import time
from typing import Awaitable, Callable, Optional, Set

import schedule

from infrastructure.configuration import ReconciliationSettings
from infrastructure.logging import clear_sweep_context, get_module_logger

logger = get_module_logger()

# Strong references to in-flight job tasks
_running_jobs: Set[asyncio.Task] = set()


def safe_run(job: Callable[..., Awaitable[object]]):
    async def wrapper(*args, **kwargs):
        try:
            return await job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "safe_run_error",
                error=str(e),
                function=getattr(job, "__name__", repr(job)),
                module=getattr(job, "__module__", None),
                job_args=args,
                exc_info=True,
            )
            return None
        finally:
            clear_sweep_context()

    return wrapper


def scheduler_heartbeat():
    logger.info(
        "running_scheduler_heartbeat", module="scheduled_tasks", time=time.ctime()
    )


def _spawn(coro_fn: Callable[[], Awaitable[object]], loop: asyncio.AbstractEventLoop):
    task = loop.create_task(coro_fn())
    _running_jobs.add(task)
    task.add_done_callback(_running_jobs.discard)
    return task


def run_continuously(
    coordinator,
    interval: float,
    initial_delay: float = 0,
    poll_interval: float = 1.0,
    scheduler: Optional[schedule.Scheduler] = None,
) -> asyncio.Event:
    """Sweep all tenants every ``interval`` seconds until the event is set.

    The first sweep runs after ``initial_delay`` seconds. A cycle that is
    still running when the next one comes due is skipped rather than
    stacked.

    Must be called from a running event loop.

    @return cease_continuous_run: asyncio.Event which can be set to stop
    the loop. Missed cycles are not run retroactively.
    """
    loop = asyncio.get_running_loop()
    cease_continuous_run = asyncio.Event()
    jobs = scheduler or schedule.Scheduler()
    in_flight: dict = {"task": None}

    sweep = safe_run(coordinator.sweep_all_tenants)

    def trigger_sweep():
        current = in_flight["task"]
        if current is not None and not current.done():
            logger.warning("sweep_cycle_still_running")
            return
        in_flight["task"] = _spawn(sweep, loop)

    async def runner():
        logger.info(
            "scheduled_tasks_started",
            interval_seconds=interval,
            initial_delay_seconds=initial_delay,
        )
        jobs.every(5).minutes.do(scheduler_heartbeat)
        try:
            await asyncio.wait_for(cease_continuous_run.wait(), timeout=initial_delay)
            return
        except asyncio.TimeoutError:
            pass

        trigger_sweep()
        jobs.every(interval).seconds.do(trigger_sweep)
        while not cease_continuous_run.is_set():
            jobs.run_pending()
            try:
                await asyncio.wait_for(
                    cease_continuous_run.wait(), timeout=poll_interval
                )
            except asyncio.TimeoutError:
                pass

    async def supervise():
        try:
            await runner()
        finally:
            jobs.clear()
            logger.info("scheduled_tasks_stopped")

    _spawn(supervise, loop)
    return cease_continuous_run


async def stop_running_jobs() -> None:
    """Cancel in-flight job tasks and wait until every one has finished.

    Call after setting the event returned by run_continuously and before
    closing the clients the jobs use.
    """
    tasks = list(_running_jobs)
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("scheduled_jobs_stopped", cancelled=len(tasks))


def init(coordinator, settings: ReconciliationSettings) -> Optional[asyncio.Event]:
    if not settings.enabled:
        logger.info("scheduled_tasks_disabled")
        return None

    logger.info("scheduled_tasks_initialized")
    return run_continuously(
        coordinator,
        interval=settings.interval_seconds,
        initial_delay=settings.initial_delay_seconds,
    )
