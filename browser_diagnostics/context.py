import asyncio
import logging
from typing import TYPE_CHECKING, Any

from browser_diagnostics.analyzer.parallel import ParallelPageAnalyzer
from browser_diagnostics.analyzer.service import PageAnalyzer
from browser_diagnostics.discovery.service import ElementDiscovery
from browser_diagnostics.errors.enrichment import ErrorEnrichment
from browser_diagnostics.errors.service import EnhancedErrorHandler
from browser_diagnostics.level import DiagnosticConfig
from browser_diagnostics.resources.service import ResourceManager

if TYPE_CHECKING:
	from browser_diagnostics.types import Page

logger = logging.getLogger(__name__)


class DiagnosticsContext:
	"""Owns one ResourceManager and the diagnostic components wired to it.

	Components are created on first access. Leaving the `async with` block
	disposes every component that was created, then the manager itself:

		async with DiagnosticsContext(page) as diagnostics:
			alternatives = await diagnostics.element_discovery.find_alternative_elements({'text': 'Submit'})
	"""

	def __init__(
		self,
		page: 'Page | None',
		config: DiagnosticConfig | dict[str, Any] | None = None,
		dispose_timeout: float | None = None,
		logger: logging.Logger | None = None,
	):
		self.page = page
		self.config = DiagnosticConfig.model_validate(config) if isinstance(config, dict) else (config or DiagnosticConfig())
		self.logger = logger or logging.getLogger(__name__)
		self.resource_manager = ResourceManager(dispose_timeout=dispose_timeout, logger=self.logger)

		self._element_discovery: ElementDiscovery | None = None
		self._page_analyzer: PageAnalyzer | None = None
		self._parallel_analyzer: ParallelPageAnalyzer | None = None
		self._error_enrichment: ErrorEnrichment | None = None
		self._error_handler: EnhancedErrorHandler | None = None
		self._closed = False

	async def __aenter__(self) -> 'DiagnosticsContext':
		self.resource_manager.start()
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
		await self.close()

	@property
	def element_discovery(self) -> ElementDiscovery:
		if self._element_discovery is None:
			self._element_discovery = ElementDiscovery(self.page, resource_manager=self.resource_manager, logger=self.logger)
		return self._element_discovery

	@property
	def page_analyzer(self) -> PageAnalyzer:
		if self._page_analyzer is None:
			self._page_analyzer = PageAnalyzer(self.page, resource_manager=self.resource_manager, logger=self.logger)
		return self._page_analyzer

	@property
	def parallel_analyzer(self) -> ParallelPageAnalyzer:
		if self._parallel_analyzer is None:
			self._parallel_analyzer = ParallelPageAnalyzer(self.page, page_analyzer=self.page_analyzer, logger=self.logger)
		return self._parallel_analyzer

	@property
	def error_enrichment(self) -> ErrorEnrichment:
		if self._error_enrichment is None:
			self._error_enrichment = ErrorEnrichment(self.page, resource_manager=self.resource_manager, logger=self.logger)
		return self._error_enrichment

	@property
	def error_handler(self) -> EnhancedErrorHandler:
		if self._error_handler is None:
			self._error_handler = EnhancedErrorHandler(
				self.page,
				diagnostic_config=self.config,
				resource_manager=self.resource_manager,
				logger=self.logger,
			)
		return self._error_handler

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True

		components = [
			self._error_handler,
			self._error_enrichment,
			self._parallel_analyzer,
			self._element_discovery,
			self._page_analyzer,
		]
		results = await asyncio.gather(
			*(component.dispose() for component in components if component is not None), return_exceptions=True
		)
		for result in results:
			if isinstance(result, Exception):
				self.logger.warning(f'Failed to dispose diagnostic component: {type(result).__name__}: {result}')

		await self.resource_manager.close()
