"""Reachability flags reported by the host platform."""

from enum import IntFlag


class ReachabilityFlags(IntFlag):
    """
    Bit-set describing whether and how a target can currently be reached.

    Bit values follow the SystemConfiguration reachability flags so that
    snapshots from a native provider can be wrapped without translation.
    """

    # Reachable via a transient link that is set up per use (e.g. PPP)
    TRANSIENT_CONNECTION = 1 << 0
    # Reachable with the current network configuration
    REACHABLE = 1 << 1
    # Reachable, but a connection must first be established
    CONNECTION_REQUIRED = 1 << 2
    # Any traffic to the target initiates the connection
    CONNECTION_ON_TRAFFIC = 1 << 3
    # The user must establish the connection manually
    INTERVENTION_REQUIRED = 1 << 4
    # The connection is established on demand by socket streams
    CONNECTION_ON_DEMAND = 1 << 5
    # The target is an address of a local interface
    IS_LOCAL_ADDRESS = 1 << 16
    # Traffic is routed directly to an interface, not through a gateway
    IS_DIRECT = 1 << 17
    # Reachable via a cellular (WWAN) interface
    IS_WWAN = 1 << 18

    @property
    def is_reachable(self) -> bool:
        return bool(self & ReachabilityFlags.REACHABLE)

    @property
    def connection_required(self) -> bool:
        return bool(self & ReachabilityFlags.CONNECTION_REQUIRED)

    @property
    def transient_connection(self) -> bool:
        return bool(self & ReachabilityFlags.TRANSIENT_CONNECTION)

    @property
    def connection_on_traffic(self) -> bool:
        return bool(self & ReachabilityFlags.CONNECTION_ON_TRAFFIC)

    @property
    def intervention_required(self) -> bool:
        return bool(self & ReachabilityFlags.INTERVENTION_REQUIRED)

    @property
    def connection_on_demand(self) -> bool:
        return bool(self & ReachabilityFlags.CONNECTION_ON_DEMAND)

    @property
    def is_local_address(self) -> bool:
        return bool(self & ReachabilityFlags.IS_LOCAL_ADDRESS)

    @property
    def is_direct(self) -> bool:
        return bool(self & ReachabilityFlags.IS_DIRECT)

    @property
    def is_wwan(self) -> bool:
        return bool(self & ReachabilityFlags.IS_WWAN)

    @property
    def is_connection_required_and_transient_connection(self) -> bool:
        """Reachable only through a transient link that still needs setting up."""
        both = ReachabilityFlags.CONNECTION_REQUIRED | ReachabilityFlags.TRANSIENT_CONNECTION
        return (self & both) == both

    def describe(self) -> str:
        """
        Render the flags as a fixed-width string, one character per flag.

        Order: W (wwan), R (reachable), then t c C i D l d for transient,
        connection required, connection on traffic, intervention required,
        connection on demand, local address and direct. Clear flags are '-'.

        Example:
            >>> (ReachabilityFlags.REACHABLE | ReachabilityFlags.IS_DIRECT).describe()
            '-R ------d'
        """
        return "".join(
            [
                "W" if self.is_wwan else "-",
                "R" if self.is_reachable else "-",
                " ",
                "t" if self.transient_connection else "-",
                "c" if self.connection_required else "-",
                "C" if self.connection_on_traffic else "-",
                "i" if self.intervention_required else "-",
                "D" if self.connection_on_demand else "-",
                "l" if self.is_local_address else "-",
                "d" if self.is_direct else "-",
            ]
        )

    def names(self) -> list[str]:
        """Names of the flags that are set, lowercase, in bit order."""
        return [member.name.lower() for member in ReachabilityFlags if member.value and self & member]
