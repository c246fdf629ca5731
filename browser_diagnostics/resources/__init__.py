from browser_diagnostics.resources.handle import SmartHandle, SmartHandleBatch
from browser_diagnostics.resources.service import ResourceManager, invoke_dispose, safe_dispose, safe_dispose_all
from browser_diagnostics.resources.views import ResourceStats, TrackedResource

__all__ = [
	'ResourceManager',
	'SmartHandle',
	'SmartHandleBatch',
	'ResourceStats',
	'TrackedResource',
	'invoke_dispose',
	'safe_dispose',
	'safe_dispose_all',
]
