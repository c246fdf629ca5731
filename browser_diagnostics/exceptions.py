class DiagnosticsError(Exception):
	"""Base class for all browser-diagnostics errors"""


class PageUnavailableError(DiagnosticsError):
	"""Raised when a component is used without a live page, or after it was disposed"""


class HandleDisposedError(DiagnosticsError):
	"""Raised when a SmartHandle or SmartHandleBatch is used after dispose()"""


class MonitoringError(DiagnosticsError):
	"""Raised when stop_monitoring() is called for an operation that was never started"""

	def __init__(self, operation_name: str):
		super().__init__(f"Operation '{operation_name}' was not started or already stopped")
		self.operation_name = operation_name
