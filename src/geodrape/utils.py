"""
utils.py

Small helpers shared by the overlay, controller and session: logging setup
and a robust exception-logging helper used wherever a failure must be
contained instead of unwinding into the host.

The public helpers:
- `configure_logging(level=logging.INFO, log_file=None)` : attach handlers to the package logger
- `safe_log_exception(msg, exc, **ctx)` : logs exceptions robustly

"""

from typing import Any, Optional
import os
import sys
import logging

from geodrape.config import LOGGING

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
	"""Attach a console handler (and optionally a file handler) to the package logger.

	Safe to call more than once: the console handler is only added the first
	time, and a file handler is added once per distinct `log_file`, so a
	later call may still turn on file logging. File handlers are delayed so
	the file is not opened until the first record is emitted.
	"""
	log = logging.getLogger(LOGGING['logger_name'])
	has_console = any(type(h) is logging.StreamHandler for h in log.handlers)
	if not has_console:                                  # avoid dupes on re-import
		h = logging.StreamHandler(sys.stdout)
		h.setFormatter(logging.Formatter(LOGGING['console_format']))
		h.setLevel(level)
		log.addHandler(h)
	if log_file is not None:
		path = os.path.abspath(log_file)
		has_file = any(isinstance(h, logging.FileHandler) and h.baseFilename == path
					   for h in log.handlers)
		if not has_file:
			try:
				fh = logging.FileHandler(path, delay=True)
				fh.setFormatter(logging.Formatter(LOGGING['file_format']))
				fh.setLevel(logging.DEBUG)
				log.addHandler(fh)
			except OSError as e:
				log.warning('file logging disabled (%s) - using console only', e)
	log.setLevel(level)
	return log


def safe_log_exception(msg: str, exc: Exception, **ctx: Any) -> None:
	"""Log an exception robustly.

	Attempts to call `logger.exception`. If logging fails for any reason,
	falls back to writing a compact message to `sys.stderr`.
	"""
	try:
		if ctx:
			ctx_s = ' | '.join(f"{k}={v!r}" for k, v in ctx.items())
			logger.exception('%s | %s | %s', msg, exc, ctx_s)
		else:
			logger.exception('%s | %s', msg, exc)
	except Exception:
		# Minimal fallback: write a compact failure message to stderr.
		try:
			sys.stderr.write(f'LOGGING FAILURE: {msg} {exc}\n')
		except Exception:
			# Give up silently; don't allow logging fallback to raise.
			pass
