from dataclasses import dataclass

import psutil

from datareader.schemas import CpuUsage, MemoryUsage


@dataclass(frozen=True)
class ResourceSample:
    cpu_seconds: float
    rss_bytes: int


class ResourceMonitor:
    """Samples CPU time and resident memory of the current process."""

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process()
        self.start: ResourceSample | None = None
        self.samples: list[ResourceSample] = []

    def take(self) -> ResourceSample:
        times = self._process.cpu_times()
        return ResourceSample(
            cpu_seconds=times.user + times.system,
            rss_bytes=self._process.memory_info().rss,
        )

    def begin(self) -> ResourceSample:
        self.start = self.take()
        return self.start

    def sample(self) -> ResourceSample:
        current = self.take()
        self.samples.append(current)
        return current

    def summarize(self) -> tuple[CpuUsage, MemoryUsage]:
        end = self.take()
        start = self.start or end

        cpu_points = [start.cpu_seconds, *(s.cpu_seconds for s in self.samples), end.cpu_seconds]
        # Peak falls back to the end sample when nothing was sampled mid-run.
        peak = max([*(s.rss_bytes for s in self.samples), end.rss_bytes])

        return (
            CpuUsage(start=start.cpu_seconds, end=end.cpu_seconds, average=sum(cpu_points) / len(cpu_points)),
            MemoryUsage(start=start.rss_bytes, end=end.rss_bytes, peak=peak),
        )
