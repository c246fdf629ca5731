import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from browser_diagnostics.exceptions import HandleDisposedError
from browser_diagnostics.resources.service import invoke_dispose

if TYPE_CHECKING:
	from browser_diagnostics.resources.service import ResourceManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SmartHandle(Generic[T]):
	"""Tracked wrapper around a browser handle.

	The handle registers itself with its ResourceManager on construction and
	unregisters on dispose(). The manager is held weakly; the handle never keeps
	it alive. After disposal (explicit, or by the manager's sweep) every access
	raises HandleDisposedError.
	"""

	def __init__(self, resource: T, manager: 'ResourceManager', dispose_method_name: str = 'dispose'):
		self._resource = resource
		self._manager_ref = weakref.ref(manager)
		self._dispose_method_name = dispose_method_name
		self._disposed = False
		self.resource_id = manager.track_resource(resource, dispose_method_name, on_disposed=self._mark_disposed)

	def __repr__(self) -> str:
		state = 'disposed' if self._disposed else 'live'
		return f'SmartHandle({self.resource_id}, {state})'

	def _mark_disposed(self) -> None:
		self._disposed = True

	def _check_disposed(self) -> None:
		if self._disposed:
			raise HandleDisposedError(f'SmartHandle {self.resource_id} has been disposed')

	@property
	def resource(self) -> T:
		self._check_disposed()
		return self._resource

	def is_disposed(self) -> bool:
		return self._disposed

	# region - ElementHandle adapter

	async def text_content(self) -> str | None:
		return await self.resource.text_content()  # type: ignore[attr-defined]

	async def get_attribute(self, name: str) -> str | None:
		return await self.resource.get_attribute(name)  # type: ignore[attr-defined]

	async def evaluate(self, expression: str, arg: Any = None) -> Any:
		return await self.resource.evaluate(expression, arg)  # type: ignore[attr-defined]

	async def content_frame(self) -> Any:
		return await self.resource.content_frame()  # type: ignore[attr-defined]

	async def query_selector_all(self, selector: str) -> list[Any]:
		return await self.resource.query_selector_all(selector)  # type: ignore[attr-defined]

	async def is_visible(self) -> bool:
		return await self.resource.is_visible()  # type: ignore[attr-defined]

	# endregion

	async def dispose(self) -> None:
		if self._disposed:
			return
		self._disposed = True

		manager = self._manager_ref()
		try:
			if manager is not None and manager.release(self.resource_id) is None:
				# already swept, disposed by dispose_all(), or untracked by a caller that disposed it itself
				return
			await invoke_dispose(self._resource, self._dispose_method_name)
		except Exception as e:
			logger.debug(f'Failed to dispose {self.resource_id}: {type(e).__name__}: {e}')
		finally:
			if manager is not None:
				manager.untrack_resource(self.resource_id)


class SmartHandleBatch:
	"""Group of SmartHandles created against one manager and disposed together."""

	def __init__(self, manager: 'ResourceManager'):
		self._manager = manager
		self._handles: list[SmartHandle] = []
		self._disposed = False

	def add(self, resource: Any, dispose_method_name: str = 'dispose') -> SmartHandle:
		if self._disposed:
			raise HandleDisposedError('SmartHandleBatch has been disposed')
		handle = SmartHandle(resource, self._manager, dispose_method_name=dispose_method_name)
		self._handles.append(handle)
		return handle

	def discard_disposed(self) -> None:
		"""Forget members that were already disposed individually."""
		self._handles = [handle for handle in self._handles if not handle.is_disposed()]

	def get_active_count(self) -> int:
		return sum(1 for handle in self._handles if not handle.is_disposed())

	def is_disposed(self) -> bool:
		return self._disposed

	async def dispose_all(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		handles, self._handles = self._handles, []
		await asyncio.gather(*(handle.dispose() for handle in handles), return_exceptions=True)

	async def dispose(self) -> None:
		await self.dispose_all()
