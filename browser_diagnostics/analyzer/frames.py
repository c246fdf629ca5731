import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from browser_diagnostics.analyzer.views import FramePerformanceIssues, FrameStatistics, LargeFrame, OldFrame
from browser_diagnostics.exceptions import DiagnosticsError
from browser_diagnostics.utils import now_ms

if TYPE_CHECKING:
	from browser_diagnostics.types import Frame

logger = logging.getLogger(__name__)

LARGE_FRAME_ELEMENTS = 1000
OLD_FRAME_AGE_MS = 300_000


@dataclass
class FrameMetadata:
	url: str
	name: str | None
	is_detached: bool = False
	timestamp: float = field(default_factory=now_ms)
	element_count: int | None = None


class FrameReferenceManager:
	"""Keeps metadata about iframes seen during page analysis and forgets them once detached."""

	def __init__(self):
		self._frames: dict['Frame', FrameMetadata] = {}
		self._disposed = False

	def track_frame(self, frame: 'Frame') -> None:
		if self._disposed:
			raise DiagnosticsError('FrameReferenceManager has been disposed')
		self._frames[frame] = FrameMetadata(url=frame.url or 'about:blank', name=frame.name or None)

	def untrack_frame(self, frame: 'Frame') -> None:
		self._frames.pop(frame, None)

	def get_frame_metadata(self, frame: 'Frame') -> FrameMetadata | None:
		return self._frames.get(frame)

	def get_active_frames(self) -> list['Frame']:
		return list(self._frames)

	def update_element_count(self, frame: 'Frame', count: int) -> None:
		metadata = self._frames.get(frame)
		if metadata:
			metadata.element_count = count

	def cleanup_detached_frames(self) -> int:
		"""Mark and drop frames the driver reports as detached. Returns how many were dropped."""
		if self._disposed:
			return 0

		detached = []
		for frame, metadata in list(self._frames.items()):
			try:
				is_detached = frame.is_detached()
			except Exception as e:
				logger.debug(f'Could not check frame {metadata.url}: {type(e).__name__}: {e}')
				is_detached = True
			if is_detached:
				metadata.is_detached = True
				detached.append(frame)

		for frame in detached:
			self._frames.pop(frame, None)
		return len(detached)

	def get_statistics(self) -> FrameStatistics:
		entries = list(self._frames.values())
		counts = [m.element_count for m in entries if m.element_count is not None]
		return FrameStatistics(
			active_count=len(entries),
			total_tracked=len(entries),
			detached_count=sum(1 for m in entries if m.is_detached),
			average_element_count=round(sum(counts) / len(counts)) if counts else 0,
		)

	def find_performance_issues(self) -> FramePerformanceIssues:
		now = now_ms()
		issues = FramePerformanceIssues()
		for metadata in self._frames.values():
			if metadata.is_detached:
				continue
			if metadata.element_count is not None and metadata.element_count > LARGE_FRAME_ELEMENTS:
				issues.large_frames.append(LargeFrame(url=metadata.url, element_count=metadata.element_count))
			age = now - metadata.timestamp
			if age > OLD_FRAME_AGE_MS:
				issues.old_frames.append(OldFrame(url=metadata.url, age=age))
		return issues

	def dispose(self) -> None:
		if self._disposed:
			return
		self.cleanup_detached_frames()
		self._frames.clear()
		self._disposed = True
