"""Cron component — a consumer emitting a tick whenever a schedule matches.

The endpoint path is a five-field expression::

    minute hour day-of-month month day-of-week

Each field is ``*``, ``*/n``, a number, or a comma separated list of those.
Day-of-week counts from Sunday = 0.  The schedule is evaluated once per
minute boundary in the component's timezone.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone as dt_timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from dromedary.core.components import Component, EventHandler, StopFn
from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress

Clock = Callable[[], datetime]


def _field_matches(field: str, value: int) -> bool:
    if field == "*":
        return True
    for segment in field.split(","):
        if segment.startswith("*/"):
            step = segment[2:]
            if step.isdigit() and int(step) > 0 and value % int(step) == 0:
                return True
        elif segment.isdigit() and int(segment) == value:
            return True
    return False


class CronSchedule:
    """A parsed five-field cron expression.

    Examples
    --------
    >>> CronSchedule("*/5 * * * *").matches(datetime(2026, 1, 1, 9, 10))
    True
    >>> CronSchedule("0 9 * * 1").matches(datetime(2026, 1, 5, 9, 0))  # a Monday
    True
    """

    def __init__(self, expression: str) -> None:
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(
                f"cron expression {expression!r} must have 5 fields, got {len(fields)}"
            )
        self.expression = " ".join(fields)
        self.minute, self.hour, self.day, self.month, self.weekday = fields

    def matches(self, moment: datetime) -> bool:
        return (
            _field_matches(self.minute, moment.minute)
            and _field_matches(self.hour, moment.hour)
            and _field_matches(self.day, moment.day)
            and _field_matches(self.month, moment.month)
            and _field_matches(self.weekday, (moment.weekday() + 1) % 7)
        )

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"


def seconds_until_next_minute(moment: datetime) -> float:
    return 60.0 - (moment.second + moment.microsecond / 1_000_000)


class CronConsumer:
    """Evaluates a schedule at each minute boundary while started."""

    def __init__(
        self,
        schedule: CronSchedule,
        zone: tzinfo | None,
        zone_name: str | None,
        clock: Clock,
        log: logging.Logger,
    ) -> None:
        self.schedule = schedule
        self._zone = zone
        self._zone_name = zone_name
        self._clock = clock
        self._log = log

    def now(self) -> datetime:
        moment = self._clock()
        if self._zone is not None:
            return moment.astimezone(self._zone)
        return moment.astimezone()

    def tick(self, moment: datetime) -> dict[str, Any]:
        return {
            "type": "cron.tick",
            "expression": self.schedule.expression,
            "timezone": self._zone_name,
            "timestamp": moment.isoformat(),
        }

    def start(self, handler: EventHandler) -> StopFn:
        label = self._zone_name or "local"
        self._log.info("[cron:%s] starting schedule (tz=%s)", self.schedule.expression, label)
        task = asyncio.get_running_loop().create_task(
            self._run(handler), name=f"dromedary-cron:{self.schedule.expression}"
        )

        def stop() -> None:
            if not task.done():
                task.cancel()
                self._log.info(
                    "[cron:%s] stopping schedule (tz=%s)", self.schedule.expression, label
                )

        return stop

    async def _run(self, handler: EventHandler) -> None:
        last_minute: datetime | None = None
        while True:
            moment = self.now()
            minute = moment.replace(second=0, microsecond=0)
            # Timers can wake slightly early, so a minute may be seen twice.
            if minute != last_minute:
                last_minute = minute
                self._log.debug(
                    "[cron:%s] evaluating at %s", self.schedule.expression, moment.isoformat()
                )
                if self.schedule.matches(moment):
                    handler(self.tick(moment))
            await asyncio.sleep(seconds_until_next_minute(moment))


class CronComponent(Component):
    """Time-based event source.

    Parameters
    ----------
    timezone:
        IANA zone name used to evaluate schedules; local time when omitted.
    clock:
        Returns the current aware datetime.  Defaults to UTC now.
    """

    def __init__(self, timezone: str | None = None, *, clock: Clock | None = None) -> None:
        self.timezone = timezone
        self._zone = ZoneInfo(timezone) if timezone else None
        self._clock = clock or (lambda: datetime.now(dt_timezone.utc))

    def create_consumer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> CronConsumer:
        schedule = CronSchedule(endpoint.path.strip())
        return CronConsumer(
            schedule,
            self._zone,
            self.timezone,
            self._clock,
            context.child_logger("cron"),
        )
