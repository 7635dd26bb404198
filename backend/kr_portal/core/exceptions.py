"""Domain exceptions shared across the portal backend."""


class PortalError(Exception):
    """Base class for errors raised by the portal core."""


class BackendError(PortalError):
    """A call to the hosted backend failed (network, auth or query error)."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


class InvalidRole(PortalError):
    def __init__(self, value):
        super().__init__(f"Unknown role: {value!r}")
        self.value = value


class RoleOverrideDenied(PortalError):
    """Only a stored kr_admin may view the portal as another role."""

    def __init__(self, stored_role, requested_role):
        super().__init__(
            f"Role override to {requested_role} not allowed for stored role {stored_role}"
        )
        self.stored_role = stored_role
        self.requested_role = requested_role


class RelayAlreadyOpen(PortalError):
    pass
