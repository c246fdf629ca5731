from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from browser_diagnostics.utils import now_ms


@dataclass
class TrackedResource:
	"""A browser-side reference whose disposal is owned by a ResourceManager"""

	id: str
	resource: Any
	dispose_method_name: str
	created_at: float = field(default_factory=now_ms)
	# notified after the manager itself disposed the resource (sweep or dispose_all)
	on_disposed: Callable[[], None] | None = field(default=None, repr=False)

	def age(self, now: float | None = None) -> float:
		return (now if now is not None else now_ms()) - self.created_at


class ResourceStats(BaseModel):
	total_tracked: int
	active_count: int
	expired_count: int
	memory_usage: int
