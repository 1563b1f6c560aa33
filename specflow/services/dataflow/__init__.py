"""Field propagation between guided workflow steps."""

from specflow.services.dataflow.defaults import DEFAULT_DATA_FLOWS, DefaultDataFlow
from specflow.services.dataflow.engine import DataFlowContext, DataFlowEngine, FieldMapping
from specflow.services.dataflow.transforms import TransformType, apply_transform

__all__ = [
    "DEFAULT_DATA_FLOWS",
    "DataFlowContext",
    "DataFlowEngine",
    "DefaultDataFlow",
    "FieldMapping",
    "TransformType",
    "apply_transform",
]
