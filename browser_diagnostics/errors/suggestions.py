"""Remediation hints derived from an error message and the context it was raised in."""

import re

from browser_diagnostics.utils import deduplicate

MAX_SUGGESTIONS = 5
LONG_EXECUTION_MS = 5000

ERROR_PATTERNS: list[tuple[re.Pattern[str], list[str]]] = [
	(
		re.compile(r'timeout', re.IGNORECASE),
		[
			'Consider increasing timeout values',
			'Check for slow network conditions',
			'Verify element loading states',
		],
	),
	(
		re.compile(r'not found|element not visible', re.IGNORECASE),
		[
			'Verify element selector accuracy',
			'Wait for element to become visible',
			'Check if element is in correct frame context',
		],
	),
	(
		re.compile(r'not enabled|disabled', re.IGNORECASE),
		[
			'Wait for element to become enabled',
			'Check element state and attributes',
			'Verify no modal dialogs are blocking interaction',
		],
	),
	(
		re.compile(r'disposed', re.IGNORECASE),
		[
			'Component or resource was disposed prematurely',
			'Check component lifecycle management',
			'Ensure proper initialization before use',
		],
	),
	(
		re.compile(r'memory', re.IGNORECASE),
		[
			'Check for memory leaks or excessive resource usage',
			'Consider more aggressive resource cleanup',
			'Monitor memory usage patterns',
		],
	),
]


def pattern_suggestions(message: str) -> list[str]:
	suggestions: list[str] = []
	for pattern, pattern_hints in ERROR_PATTERNS:
		if pattern.search(message):
			suggestions.extend(pattern_hints)
	return suggestions


def context_suggestions(
	operation: str,
	component: str,
	execution_time: float | None = None,
	selector: str | None = None,
) -> list[str]:
	suggestions: list[str] = []

	if execution_time and execution_time > LONG_EXECUTION_MS:
		suggestions.append('Long execution time detected - consider optimization')

	if selector:
		suggestions.append(f'Failed selector: {selector}')
		if '#' in selector:
			suggestions.append('ID selectors may be fragile - consider alternatives')
		if 'nth-child' in selector:
			suggestions.append('Position-based selectors are fragile - use semantic selectors')

	if component == 'PageAnalyzer':
		suggestions.append('Consider using parallel analysis for complex pages')

	if 'iframe' in operation:
		suggestions.append('Check iframe accessibility and cross-origin restrictions')

	return suggestions


def generate_suggestions(
	error: BaseException | str,
	operation: str | None = None,
	component: str | None = None,
	execution_time: float | None = None,
	selector: str | None = None,
) -> list[str]:
	"""Pattern hints for the message, then context hints; deduplicated and capped at five."""
	suggestions = pattern_suggestions(str(error))
	if operation is not None and component is not None:
		suggestions.extend(context_suggestions(operation, component, execution_time=execution_time, selector=selector))
	return deduplicate(suggestions)[:MAX_SUGGESTIONS]
