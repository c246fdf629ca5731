"""Fakes for testing browser-diagnostics without a browser."""

from unittest.mock import AsyncMock

from browser_diagnostics.analyzer.service import COMPLEXITY_JS, ELEMENT_STATS_JS, MODAL_STATE_JS


class FakeHandle:
	"""Stands in for an ElementHandle; records how many times it was disposed."""

	def __init__(self, name: str = 'handle', fail: bool = False):
		self.name = name
		self.fail = fail
		self.dispose_calls = 0

	async def dispose(self):
		self.dispose_calls += 1
		if self.fail:
			raise RuntimeError(f'{self.name} refused to dispose')

	async def text_content(self):
		return self.name

	async def get_attribute(self, name):
		return f'{self.name}-{name}'

	def __repr__(self):
		return f'FakeHandle({self.name})'


class SyncFakeHandle(FakeHandle):
	"""Disposes synchronously, like a plain Python resource."""

	def dispose(self):
		self.dispose_calls += 1


class ClosableFakeHandle(FakeHandle):
	async def close(self):
		self.dispose_calls += 1


def create_mock_page(
	modal_state: dict | None = None,
	element_stats: dict | None = None,
	complexity: dict | None = None,
	performance_data: dict | Exception | None = None,
	iframes: list | None = None,
):
	"""Create an AsyncMock page that answers the analyzer's page scripts.

	Args:
		modal_state: result of the modal state script, defaults to no dialogs
		element_stats: result of the element statistics script
		complexity: result of the complexity script
		performance_data: result of the performance metrics script, or an exception to raise
		iframes: elements returned for the 'iframe' query
	"""
	page = AsyncMock()
	page.frames = [object()]
	page.main_frame.name = ''

	async def evaluate(expression, arg=None):
		if expression == MODAL_STATE_JS:
			return modal_state or {'hasDialog': False, 'hasFileChooser': False}
		if expression == ELEMENT_STATS_JS:
			return element_stats or {'totalVisible': 10, 'totalInteractable': 2, 'missingAria': 0}
		if expression == COMPLEXITY_JS:
			return complexity or {'elementCount': 10, 'iframeCount': 0, 'formElements': 0}
		if isinstance(performance_data, Exception):
			raise performance_data
		if performance_data is not None:
			return performance_data
		raise RuntimeError(f'unexpected script: {expression[:40]}')

	page.evaluate.side_effect = evaluate

	async def query_selector_all(selector):
		if selector == 'iframe':
			return list(iframes or [])
		return []

	page.query_selector_all.side_effect = query_selector_all
	return page
