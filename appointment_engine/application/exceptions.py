class EngineError(RuntimeError):
    """Base class for errors surfaced to the caller of a workflow."""
    pass


class NotFound(EngineError):
    """Raised when the referenced appointment or entity does not exist."""
    pass


class InvalidTransition(EngineError):
    """Raised when a status change is not allowed from the current status."""
    pass


class IntegrityError(EngineError):
    """Raised when a required related record (service, client) is missing."""
    pass


class PersistenceError(EngineError):
    """Raised when the datastore fails (timeouts, network errors, rejected writes)."""
    pass
