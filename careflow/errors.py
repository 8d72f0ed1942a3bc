"""
CareFlow error types.

ValidationError and NotFoundError fail fast and reach the caller.
ExternalServiceError wraps embedding / generation / guideline-source
failures. PartialFailure classifies degraded helpers; it is recorded
and logged, never raised to callers.
"""


class CareFlowError(Exception):
    """Base exception for all CareFlow errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CareFlowError):
    """Raised for malformed input."""
    pass


class UnknownWorkflowType(ValidationError):
    """Raised when a workflow type has no built-in template."""

    def __init__(self, workflow_type: str):
        super().__init__(f"Unknown workflow type: {workflow_type}")
        self.workflow_type = workflow_type


class InvalidDocument(ValidationError):
    """Raised when a document cannot be indexed."""

    def __init__(self, message: str, document_id: str = None):
        super().__init__(message)
        self.document_id = document_id


class NotFoundError(CareFlowError):
    """Raised when a referenced entity does not exist."""
    pass


class AgentNotFound(NotFoundError):
    """Raised when no agent is bound to a capability."""

    def __init__(self, capability: str):
        super().__init__(f"Agent not found for capability: {capability}")
        self.capability = capability


class ExternalServiceError(CareFlowError):
    """Raised when an embedding, generation or guideline service fails."""

    def __init__(self, message: str, service: str = None):
        super().__init__(message)
        self.service = service


class PartialFailure(CareFlowError):
    """A helper degraded to its fallback instead of failing the operation."""

    def __init__(self, message: str, fallback: str = None):
        super().__init__(message)
        self.fallback = fallback
