"""Static configuration: settings, network registry, protocol deployments."""

from .networks import (
    NETWORKS,
    NetworkDescriptor,
    build_networks,
    default_network,
    detect_network_from_rpc,
    get_network,
    is_valid_network,
    resolve_rpc_url,
    supported_network_ids,
)

from .protocols import (
    PROTOCOL_ADDRESSES,
    PROTOCOL_INFO,
    SUPPORTED_PROTOCOLS,
    deployed_networks,
    is_protocol_supported,
)

__all__ = [
    # Networks
    "NETWORKS",
    "NetworkDescriptor",
    "build_networks",
    "default_network",
    "detect_network_from_rpc",
    "get_network",
    "is_valid_network",
    "resolve_rpc_url",
    "supported_network_ids",
    # Protocols
    "PROTOCOL_ADDRESSES",
    "PROTOCOL_INFO",
    "SUPPORTED_PROTOCOLS",
    "deployed_networks",
    "is_protocol_supported",
]
