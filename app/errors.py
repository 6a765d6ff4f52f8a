"""Error taxonomy for the ingestion pipeline.

Primary-path errors (validation, configuration, persistence) reach the caller
with an HTTP status attached.  ``SideEffectError`` wraps failures in alert
creation or device control; it is logged by the pipeline and never surfaced.
"""

from __future__ import annotations


class HydroponicsError(Exception):
	"""Base class for caller-visible pipeline failures."""

	status_code: int = 500

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message


class ValidationError(HydroponicsError):
	"""A required reading field is missing or not a finite number."""

	status_code = 400


class ConfigurationError(HydroponicsError):
	"""No crop profile could be resolved for the reading."""

	status_code = 404


class PersistenceError(HydroponicsError):
	"""The primary reading write failed."""

	status_code = 500


class SideEffectError(HydroponicsError):
	"""Alert creation or device update failed after the reading was stored."""

	def __init__(self, stage: str, cause: BaseException):
		super().__init__(f"{stage} failed: {cause}")
		self.stage = stage
		self.cause = cause
