import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from browser_diagnostics.config import CONFIG


def addLoggingLevel(levelName, levelNum, methodName=None):
	"""
	Adds a new logging level to the `logging` module and the currently configured
	logging class.

	`levelName` becomes an attribute of the `logging` module with the value
	`levelNum`. `methodName` becomes a convenience method for both `logging`
	itself and the class returned by `logging.getLoggerClass()`. If `methodName`
	is not specified, `levelName.lower()` is used.

	Raises `AttributeError` if the level name or method name is already defined.

	Example
	-------
	>>> addLoggingLevel('RESULT', 35)
	>>> logging.getLogger(__name__).result('diagnostics ready')
	"""
	if not methodName:
		methodName = levelName.lower()

	if hasattr(logging, levelName):
		raise AttributeError(f'{levelName} already defined in logging module')
	if hasattr(logging, methodName):
		raise AttributeError(f'{methodName} already defined in logging module')
	if hasattr(logging.getLoggerClass(), methodName):
		raise AttributeError(f'{methodName} already defined in logger class')

	def logForLevel(self, message, *args, **kwargs):
		if self.isEnabledFor(levelNum):
			self._log(levelNum, message, args, **kwargs)

	def logToRoot(message, *args, **kwargs):
		logging.log(levelNum, message, *args, **kwargs)

	logging.addLevelName(levelNum, levelName)
	setattr(logging, levelName, levelNum)
	setattr(logging.getLoggerClass(), methodName, logForLevel)
	setattr(logging, methodName, logToRoot)


def setup_logging():
	try:
		addLoggingLevel('RESULT', 35)  # between WARNING and ERROR
	except AttributeError:
		pass  # already registered

	log_type = CONFIG.BROWSER_DIAGNOSTICS_LOGGING_LEVEL

	# host application already configured logging
	if logging.getLogger().hasHandlers():
		return logging.getLogger('browser_diagnostics')

	root = logging.getLogger()
	root.handlers = []

	class DiagnosticsFormatter(logging.Formatter):
		def format(self, record):
			if isinstance(record.name, str) and record.name.startswith('browser_diagnostics.'):
				record.name = record.name.removeprefix('browser_diagnostics.')
			return super().format(record)

	console = logging.StreamHandler(sys.stdout)

	if log_type == 'result':
		console.setLevel('RESULT')
		console.setFormatter(DiagnosticsFormatter('%(message)s'))
	else:
		console.setFormatter(DiagnosticsFormatter('%(levelname)-8s [%(name)s] %(message)s'))

	root.addHandler(console)

	if log_type == 'result':
		root.setLevel('RESULT')
	elif log_type == 'debug':
		root.setLevel(logging.DEBUG)
	else:
		root.setLevel(logging.INFO)

	diagnostics_logger = logging.getLogger('browser_diagnostics')
	diagnostics_logger.propagate = False
	diagnostics_logger.addHandler(console)
	diagnostics_logger.setLevel(root.level)

	third_party_loggers = [
		'playwright',
		'patchright',
		'asyncio',
		'urllib3',
		'httpx',
		'httpcore',
	]
	for logger_name in third_party_loggers:
		third_party = logging.getLogger(logger_name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	return diagnostics_logger
