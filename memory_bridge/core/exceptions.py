"""Custom exceptions for memory bridge operations."""


class BridgeError(Exception):
    """Base exception for memory bridge operations."""
    pass


class InvalidRequestError(BridgeError):
    """Raised when caller input is malformed or missing required fields."""
    pass


class EntityNotFoundError(BridgeError):
    """Raised when a referenced entity does not exist in the store."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entity not found: {name}")


class EntityExistsError(BridgeError):
    """Raised when a target entity name is already taken."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Target entity already exists: {name}")


class ConfigError(BridgeError, ValueError):
    """Raised when the store subprocess configuration is invalid."""
    pass


class UpstreamError(BridgeError):
    """Raised when the store, its process or its transport fails."""
    pass


class ConnectionClosedError(UpstreamError):
    """Raised when the store client is used while not connected."""
    pass


class ToolCallError(UpstreamError):
    """Raised when the store answers a tool call with an error result."""
    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"Tool '{tool}' failed: {message}")


class StepFailedError(UpstreamError):
    """
    Raised when one step of a multi-step store operation fails.

    Earlier steps are not rolled back; `completed` lists the stages that were
    applied before `stage` failed, so the caller can reconcile by hand.
    """
    def __init__(self, operation: str, stage: str, completed: list[str], cause: BaseException):
        self.operation = operation
        self.stage = stage
        self.completed = list(completed)
        self.cause = cause
        super().__init__(f"{operation} failed at stage '{stage}': {cause}")
