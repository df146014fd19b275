"""Target Resolver - Binds a hostname or the default route to a platform handle."""

from typing import Optional

from loguru import logger

from netreach.core.errors import CreationFailedError, InitFailedError
from netreach.providers.base import DEFAULT_ROUTE_ADDRESS, ReachabilityHandle, ReachabilityProvider


def describe_target(hostname: Optional[str]) -> str:
    return hostname if hostname else "default route"


class TargetResolver:
    """
    Produces reachability handles from a provider.

    Resolution is never retried: the platform only refuses on a malformed
    name or resource exhaustion, so a failure is raised straight to the
    caller.
    """

    def __init__(self, provider: ReachabilityProvider):
        self.provider = provider

    def resolve(self, hostname: Optional[str] = None) -> ReachabilityHandle:
        """
        Create a handle for a target.

        Args:
            hostname: Host to watch. None or "" selects the default route.

        Returns:
            Platform reachability handle

        Raises:
            CreationFailedError: The provider refused the hostname
            InitFailedError: The provider refused the default route
        """
        if hostname:
            handle = self.provider.create_with_name(hostname)
            if handle is None:
                logger.error(f"[TargetResolver] Provider refused hostname '{hostname}'")
                raise CreationFailedError(hostname)
        else:
            handle = self.provider.create_with_address(DEFAULT_ROUTE_ADDRESS)
            if handle is None:
                logger.error("[TargetResolver] Provider refused default route")
                raise InitFailedError(DEFAULT_ROUTE_ADDRESS)

        logger.debug(f"[TargetResolver] Resolved {describe_target(hostname)}")
        return handle
