import logging
import time
from collections.abc import Callable, Coroutine, Iterable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

# Define generic type variables for return type and parameters
R = TypeVar('R')
T = TypeVar('T')
P = ParamSpec('P')


def now_ms() -> float:
	"""Wall-clock time in milliseconds, the unit used for every timestamp and duration in this package."""
	return time.time() * 1000


def time_execution_async(
	additional_text: str = '',
) -> Callable[[Callable[P, Coroutine[Any, Any, R]]], Callable[P, Coroutine[Any, Any, R]]]:
	def decorator(func: Callable[P, Coroutine[Any, Any, R]]) -> Callable[P, Coroutine[Any, Any, R]]:
		@wraps(func)
		async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
			start_time = time.time()
			result = await func(*args, **kwargs)
			execution_time = time.time() - start_time
			# Only log slow calls; lower this locally when profiling
			if execution_time > 0.25:
				_logger_for(args).debug(f'⏳ {additional_text.strip("-")}() took {execution_time:.2f}s')
			return result

		return wrapper

	return decorator


def _logger_for(args: tuple) -> logging.Logger:
	component_logger = args and getattr(args[0], 'logger', None)
	if isinstance(component_logger, logging.Logger):
		return component_logger
	return logger


def deduplicate(items: Iterable[T]) -> list[T]:
	"""Drop repeated items, keeping the first occurrence and the original order."""
	seen: set[T] = set()
	unique: list[T] = []
	for item in items:
		if item not in seen:
			seen.add(item)
			unique.append(item)
	return unique
