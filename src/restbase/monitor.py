"""
Resource client monitor module.

A global "monitors" object is a list of monitors and a monitor itself. Applications are free
to add/remove their own monitors to/from this object to receive measurements of client
operations.
"""

import asyncio
import time

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal


# type aliases
Type = Literal["counter", "gauge"]
Tags = dict[str, str]
Value = int | float


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class Measurement:
    """
    An individual measurement.

    Parameters and attributes:
    • name: name of the measurement
    • type: type of measurement
    • value: measured value
    • tags: key-value pairs that qualify the measurement
    • unit: unit of measure
    • timestamp: date and time of the measurement  [now]

    Name should be an identifier in snake_case describing the metric being measured
    (e.g. "operation_invocations", "operation_duration"). Unit should be a standard symbol
    (e.g. "s" for seconds).
    """

    name: str
    type: Type
    value: Value
    tags: Tags | None = None
    unit: str | None = None
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self):
        if not self.name:
            raise ValueError("measurement name is required")
        if self.type not in ("counter", "gauge"):
            raise ValueError(f"invalid measurement type: {self.type}")


class Monitor:
    """Base class for a monitor that records measurements."""

    async def record(self, measurement: Measurement) -> None:
        """Record a measurement."""
        raise NotImplementedError

    async def flush(self) -> None:
        """Flush all cached measurements. Base class implementation does nothing."""
        return


class Monitors(Monitor, list[Monitor]):
    """A list of monitors, to which all measurements are recorded."""

    async def record(self, measurement: Measurement) -> None:
        await asyncio.gather(*(monitor.record(measurement) for monitor in self))

    async def flush(self) -> None:
        await asyncio.gather(*(monitor.flush() for monitor in self))


monitors = Monitors()


async def record(measurement: Measurement, monitor: Monitor | None = None) -> None:
    """
    Record a measurement.

    Parameters:
    • measurement: measurement to record
    • monitor: monitor to record measurement  [global monitors]
    """
    await (monitor if monitor is not None else monitors).record(measurement)


@asynccontextmanager
async def timer(*, name: str, tags: Tags | None = None, monitor: Monitor | None = None):
    """
    An asynchronous context manager that times the execution of work and records it as a
    gauge measurement of duration in seconds. If an exception is raised during execution, the
    measurement is not recorded.
    """
    begin = time.perf_counter()
    yield
    await record(
        Measurement(
            name=name, type="gauge", value=time.perf_counter() - begin, unit="s", tags=tags
        ),
        monitor,
    )


@asynccontextmanager
async def counter(
    *,
    name: str,
    tags: Tags | None = None,
    monitor: Monitor | None = None,
    status: str | None = None,
):
    """
    An asynchronous context manager that counts executions.

    Parameters:
    • name: measurement name
    • tags: key-value pairs that qualify the measurement
    • monitor: monitor to record measurement  [global monitors]
    • status: tag to record the status of execution

    If recording status, the value "success" is added as a tag if execution was successful,
    or "failure" if an exception was raised during execution. If execution is cancelled, the
    execution is not counted.
    """
    exception = None
    try:
        yield
    except Exception as e:
        exception = e
    if status:
        tags = {**(tags or {}), status: "failure" if exception else "success"}
    await record(Measurement(name=name, type="counter", value=1, tags=tags), monitor)
    if exception:
        raise exception

