"""
Error taxonomy for the monitor.

Every error carries the protocol / network / address it concerns so log lines
are actionable on their own.
"""

from typing import List, Optional


class MonitorError(Exception):
    """Base class for all monitor errors."""

    def __init__(
        self,
        message: str,
        protocol: Optional[str] = None,
        network: Optional[str] = None,
        address: Optional[str] = None
    ):
        super().__init__(message)
        self.protocol = protocol
        self.network = network
        self.address = address


class InvalidRequest(MonitorError, ValueError):
    """Malformed monitor request (e.g. empty protocol list)."""


class UnsupportedNetwork(MonitorError):
    """Unknown network identifier."""

    def __init__(self, network: str, supported: List[str]):
        super().__init__(
            f"Unsupported network: {network}. Supported networks: {', '.join(supported)}",
            network=network
        )
        self.supported = list(supported)


class UnsupportedProtocol(MonitorError):
    """Unknown protocol identifier, or protocol not deployed on a network."""

    def __init__(self, protocol: str, supported: List[str], network: Optional[str] = None):
        if network:
            message = f"Protocol {protocol} not supported on network {network}"
        else:
            message = f"Unsupported protocol: {protocol}. Supported protocols: {', '.join(supported)}"
        super().__init__(message, protocol=protocol, network=network)
        self.supported = list(supported)


class NetworkConnectionError(MonitorError, ConnectionError):
    """RPC endpoint unreachable or initial block height query failed."""


class InvalidAddress(MonitorError):
    """Malformed contract address supplied by the caller."""

    def __init__(self, address: str, protocol: Optional[str] = None, network: Optional[str] = None):
        super().__init__(
            f"Invalid address for {protocol or 'protocol'} on {network or 'network'}: {address}",
            protocol=protocol,
            network=network,
            address=address
        )


class ContractCallFailure(MonitorError):
    """An on-chain read for one pool failed (revert, missing market, timeout)."""

    def __init__(self, protocol: str, network: str, address: str, cause: Exception):
        super().__init__(
            f"{protocol} read failed for {address} on {network}: {cause}",
            protocol=protocol,
            network=network,
            address=address
        )
        self.cause = cause


class ConfigurationMissing(MonitorError):
    """No known contract address for a protocol + network combination."""

    def __init__(self, protocol: str, network: str, key: str):
        super().__init__(
            f"{protocol} not configured for network {network} (missing {key})",
            protocol=protocol,
            network=network
        )
        self.key = key
