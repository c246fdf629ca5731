"""
Per-operation timing and memory sampling for diagnostic work.

Memory is sampled only at the start and end of each monitored operation, so
get_peak_memory_usage() is the maximum over those sampling points and can
undercount the true peak reached in between.
"""

import logging
from dataclasses import dataclass

import psutil

from browser_diagnostics.exceptions import MonitoringError
from browser_diagnostics.monitor.views import AnalysisStep, MemorySnapshot, ResourceUsage, TimelineEntry
from browser_diagnostics.utils import now_ms

logger = logging.getLogger(__name__)


@dataclass
class _RunningOperation:
	start_time: float
	start_memory: MemorySnapshot
	entry: TimelineEntry


class ResourceUsageMonitor:
	def __init__(self, logger: logging.Logger | None = None):
		self.logger = logger or logging.getLogger(__name__)
		self._process = psutil.Process()
		self._operations: dict[str, list[_RunningOperation]] = {}
		self._timeline: list[TimelineEntry] = []

	def start_monitoring(self, operation_name: str) -> None:
		start_memory = self.get_current_memory_usage()
		entry = TimelineEntry(operation_name=operation_name, start_time=now_ms(), memory_usage=start_memory)
		self._timeline.append(entry)
		self._operations.setdefault(operation_name, []).append(
			_RunningOperation(start_time=entry.start_time, start_memory=start_memory, entry=entry)
		)

	def stop_monitoring(self, operation_name: str) -> ResourceUsage:
		running = self._operations.get(operation_name)
		if not running:
			raise MonitoringError(operation_name)

		# most recent unfinished run of this name
		operation = running.pop()
		if not running:
			del self._operations[operation_name]

		end_time = now_ms()
		end_memory = self.get_current_memory_usage()
		duration = end_time - operation.start_time

		operation.entry.end_time = end_time
		operation.entry.duration = duration

		return ResourceUsage(
			operation_name=operation_name,
			duration=duration,
			memory_usage=end_memory,
			cpu_time=0,
			peak_memory=max(operation.start_memory.used, end_memory.used),
		)

	def get_operation_timeline(self) -> list[TimelineEntry]:
		return [entry.model_copy() for entry in self._timeline]

	def get_current_memory_usage(self) -> MemorySnapshot:
		info = self._process.memory_info()
		return MemorySnapshot(used=info.rss, rss=info.rss, vms=info.vms)

	def clear_timeline(self) -> None:
		self._timeline = []

	def get_peak_memory_usage(self) -> int:
		if not self._timeline:
			return 0
		return max(entry.memory_usage.used for entry in self._timeline)

	def get_resource_usage(self) -> ResourceUsage:
		"""Summary over everything currently on the timeline."""
		current = self.get_current_memory_usage()
		duration = now_ms() - min(entry.start_time for entry in self._timeline) if self._timeline else 0
		return ResourceUsage(
			operation_name='ResourceUsageMonitor',
			duration=duration,
			memory_usage=current,
			cpu_time=0,
			peak_memory=self.get_peak_memory_usage() or current.used,
			analysis_steps=[AnalysisStep(step=entry.operation_name, duration=entry.duration) for entry in self._timeline],
		)

	def dispose(self) -> None:
		if self._operations:
			self.logger.debug(f'Disposing monitor with {len(self._operations)} unfinished operation(s)')
		self._operations.clear()
		self._timeline = []
