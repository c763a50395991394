"""Error taxonomy shared by the store, the provider and the orchestrator."""


class ScholarFlowError(Exception):
	"""Base class for application errors."""


class AuthError(ScholarFlowError):
	"""Bad credentials or no signed-in account."""


class ConflictError(AuthError):
	"""An account with the same email already exists."""


class InferenceError(ScholarFlowError):
	"""Any failure of an inference provider call."""


class PersistenceError(ScholarFlowError):
	"""A session store write or read failed."""


class ValidationError(ScholarFlowError):
	"""Input rejected before any work was started."""
