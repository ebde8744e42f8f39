"""Physics models."""

from .flow import FlowFields, FlowState
from .transport import ConstantTransport, TwoPhaseTransport, make_transport
from .turbulence import make_turbulence_model, register_turbulence, turbulence_registry

__all__ = [
    "ConstantTransport",
    "FlowFields",
    "FlowState",
    "TwoPhaseTransport",
    "make_transport",
    "make_turbulence_model",
    "register_turbulence",
    "turbulence_registry",
]
