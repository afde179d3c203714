"""Protocol adapters."""

from .aave import AaveAdapter
from .base import ProtocolAdapter
from .compound import CompoundAdapter
from .morpho import MorphoAdapter

ADAPTER_CLASSES = {
    AaveAdapter.protocol_id: AaveAdapter,
    CompoundAdapter.protocol_id: CompoundAdapter,
    MorphoAdapter.protocol_id: MorphoAdapter,
}

__all__ = [
    "ADAPTER_CLASSES",
    "AaveAdapter",
    "CompoundAdapter",
    "MorphoAdapter",
    "ProtocolAdapter",
]
