"""
Tracking and guaranteed disposal of browser-side handles.

Every ElementHandle (or any object with an async/sync dispose method) obtained
during diagnostic work is registered here. Entries leave the registry through
exactly one of three doors: untrack_resource() (caller already disposed it),
release() / dispose_all() (explicit disposal), or the TTL sweep. Each door pops
the entry before acting on it, so when two of them race the loser finds nothing
to do.
"""

import asyncio
import inspect
import itertools
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

import psutil

from browser_diagnostics.config import CONFIG
from browser_diagnostics.resources.views import ResourceStats, TrackedResource
from browser_diagnostics.utils import now_ms

if TYPE_CHECKING:
	from browser_diagnostics.resources.handle import SmartHandle

logger = logging.getLogger(__name__)

# shared by every manager so ids stay unique across the process
_resource_ids = itertools.count(1)


async def invoke_dispose(resource: Any, dispose_method_name: str = 'dispose') -> None:
	"""Call resource.<dispose_method_name>(), awaiting the result when it is awaitable."""
	method = getattr(resource, dispose_method_name, None)
	if not callable(method):
		return
	result = method()
	if inspect.isawaitable(result):
		await result


async def safe_dispose(resource: Any, resource_type: str, operation: str, dispose_method_name: str = 'dispose') -> bool:
	"""Dispose a resource, logging instead of raising on failure. Returns True on success."""
	try:
		await invoke_dispose(resource, dispose_method_name)
		return True
	except Exception as e:
		logger.debug(f'Failed to dispose {resource_type} during {operation}: {type(e).__name__}: {e}')
		return False


async def safe_dispose_all(resources: Iterable[Any], resource_type: str, operation: str) -> None:
	await asyncio.gather(*(safe_dispose(resource, resource_type, operation) for resource in resources), return_exceptions=True)


class ResourceManager:
	"""Registry of disposable browser resources with a TTL sweep.

	Owned by the hosting application (see DiagnosticsContext); use it as an async
	context manager, or call start() / close() explicitly. All times are in ms.
	"""

	def __init__(self, dispose_timeout: float | None = None, logger: logging.Logger | None = None):
		self.logger = logger or logging.getLogger(__name__)
		self._resources: dict[str, TrackedResource] = {}
		self._dispose_timeout: float = dispose_timeout or CONFIG.BROWSER_DIAGNOSTICS_DISPOSE_TIMEOUT_MS
		self._sweep_task: asyncio.Task | None = None

	def __repr__(self) -> str:
		return f'ResourceManager(active={len(self._resources)}, dispose_timeout={self._dispose_timeout:.0f}ms)'

	# region - Lifecycle

	async def __aenter__(self) -> 'ResourceManager':
		self.start()
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		await self.close()

	def start(self) -> None:
		"""Start the background TTL sweep on the running event loop."""
		if self._sweep_task and not self._sweep_task.done():
			return
		self._sweep_task = asyncio.create_task(self._sweep_loop(), name=f'{self!r}.sweep')

	async def close(self) -> None:
		"""Stop the sweep and dispose everything still tracked."""
		if self._sweep_task:
			self._sweep_task.cancel()
			try:
				await self._sweep_task
			except asyncio.CancelledError:
				pass
			self._sweep_task = None
		await self.dispose_all()

	@property
	def is_sweeping(self) -> bool:
		return self._sweep_task is not None and not self._sweep_task.done()

	# endregion

	# region - Tracking

	def track_resource(
		self,
		resource: Any,
		dispose_method_name: str = 'dispose',
		on_disposed: Callable[[], None] | None = None,
	) -> str:
		resource_id = f'resource_{next(_resource_ids)}'
		self._resources[resource_id] = TrackedResource(
			id=resource_id,
			resource=resource,
			dispose_method_name=dispose_method_name,
			on_disposed=on_disposed,
		)
		return resource_id

	def untrack_resource(self, resource_id: str) -> None:
		"""Forget a resource without disposing it; the caller attests it is already disposed."""
		self._resources.pop(resource_id, None)

	def release(self, resource_id: str) -> TrackedResource | None:
		"""Remove and return an entry so the caller can dispose it; None if another path got there first."""
		return self._resources.pop(resource_id, None)

	def is_tracked(self, resource_id: str) -> bool:
		return resource_id in self._resources

	def create_smart_handle(self, resource: Any, dispose_method_name: str = 'dispose') -> 'SmartHandle':
		from browser_diagnostics.resources.handle import SmartHandle

		return SmartHandle(resource, self, dispose_method_name=dispose_method_name)

	def get_active_count(self) -> int:
		return len(self._resources)

	def set_dispose_timeout(self, timeout: float) -> None:
		"""Change the TTL; the sweep interval follows from the next cycle on."""
		if timeout <= 0:
			raise ValueError(f'dispose timeout must be positive, got {timeout}')
		self._dispose_timeout = timeout

	def get_dispose_timeout(self) -> float:
		return self._dispose_timeout

	def get_resource_stats(self) -> ResourceStats:
		now = now_ms()
		entries = list(self._resources.values())
		expired_count = sum(1 for entry in entries if entry.age(now) > self._dispose_timeout)
		return ResourceStats(
			total_tracked=len(entries),
			active_count=len(entries) - expired_count,
			expired_count=expired_count,
			memory_usage=psutil.Process().memory_info().rss,
		)

	# endregion

	# region - Disposal

	async def dispose_all(self) -> None:
		"""Dispose every tracked resource concurrently; one failure never blocks the others."""
		entries = list(self._resources.values())
		self._resources.clear()
		if not entries:
			return

		results = await asyncio.gather(*(self._dispose_entry(entry) for entry in entries), return_exceptions=True)
		failed = sum(1 for result in results if result is not True)
		if failed:
			self.logger.debug(f'dispose_all: {failed}/{len(entries)} resource(s) failed to dispose cleanly')

	async def cleanup_expired_resources(self) -> int:
		"""Dispose entries older than the dispose timeout. Returns how many were swept."""
		now = now_ms()
		expired_ids = [
			resource_id for resource_id, entry in list(self._resources.items()) if entry.age(now) > self._dispose_timeout
		]

		swept = 0
		for resource_id in expired_ids:
			entry = self._resources.pop(resource_id, None)
			if entry is None:
				# disposed explicitly while we were sweeping
				continue
			await self._dispose_entry(entry)
			swept += 1

		if swept:
			self.logger.debug(f'🧹 Swept {swept} expired resource(s) older than {self._dispose_timeout:.0f}ms')
		return swept

	async def _dispose_entry(self, entry: TrackedResource) -> bool:
		try:
			await invoke_dispose(entry.resource, entry.dispose_method_name)
			return True
		except Exception as e:
			self.logger.debug(f'Failed to dispose resource {entry.id}: {type(e).__name__}: {e}')
			return False
		finally:
			if entry.on_disposed:
				entry.on_disposed()

	async def _sweep_loop(self) -> None:
		while True:
			await asyncio.sleep(self._dispose_timeout / 2 / 1000)
			try:
				await self.cleanup_expired_resources()
			except Exception as e:
				self.logger.warning(f'Resource sweep failed: {type(e).__name__}: {e}')

	# endregion
