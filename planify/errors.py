class PlanifyError(Exception):
    """Base class for every error raised by the planify core."""


class AuthenticationError(PlanifyError):
    """No resolvable actor for the calling flow."""


class ValidationError(PlanifyError):
    """Malformed input: amounts, dates, unknown entity types or permission levels."""


class PermissionDeniedError(PlanifyError):
    """The actor lacks the permission level an operation requires."""


class StoreError(PlanifyError):
    """Failure reported by an entity store."""


class NotFoundError(StoreError):
    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class BackendUnavailable(StoreError):
    """Transient store failure. Propagated unchanged, never retried by the core."""
