class TopologyError(Exception):
    """Base exception for kube-topology."""

    pass


class ConfigurationError(TopologyError):
    """Raised when the topology configuration is missing or invalid."""

    pass


class PlanError(TopologyError):
    """Raised when a resource cannot be added to a deployment plan."""

    pass


class ProvisioningError(TopologyError):
    """Raised when a platform call fails to create a resource."""

    def __init__(self, message: str, resource: str | None = None):
        super().__init__(message)
        self.resource = resource


class DependencyFailedError(TopologyError):
    """Raised for resources that were never created because an upstream one failed."""

    def __init__(self, resource: str, cause: BaseException):
        super().__init__(f"Resource {resource!r} skipped: upstream failure ({cause})")
        self.resource = resource
        self.cause = cause


class AddressNotAssignedError(TopologyError):
    """Raised when a load-balanced Service has no ingress point yet."""

    pass
