"""Errors raised while resolving targets, starting monitors and validating configuration."""


class ReachabilityError(Exception):
    """Base class for netreach errors."""

    pass


class ResolveError(ReachabilityError):
    """The platform refused to create a reachability handle."""

    pass


class CreationFailedError(ResolveError):
    """No handle could be created for a hostname."""

    def __init__(self, hostname: str):
        self.hostname = hostname
        super().__init__(f"Failed to create reachability handle for '{hostname}'")


class InitFailedError(ResolveError):
    """No handle could be created for the default route."""

    def __init__(self, address: str = "0.0.0.0"):
        self.address = address
        super().__init__(f"Failed to initialize reachability handle for default route ({address})")


class MonitorError(ReachabilityError):
    """The platform could not attach a monitor to its handle."""

    pass


class CalloutRegistrationFailedError(MonitorError):
    def __init__(self):
        super().__init__("Failed to register reachability callout")


class DispatchBindingFailedError(MonitorError):
    def __init__(self):
        super().__init__("Failed to bind reachability handle to dispatch queue")


class ConfigValidationError(ValueError):
    """A configuration value has the wrong type or range."""

    def __init__(self, key: str, value, reason: str):
        self.key = key
        self.value = value
        super().__init__(f"Invalid value for '{key}': {value!r} ({reason})")
