"""
Costa - the script runner of a machine-learning pipeline.

Loads datasource, dataflow and model scripts, builds the context they share
and runs them in pipeline order.
"""
from costa.runtime import (
    ContextNotInitializedError,
    Costa,
    CostaOption,
    EntryPointNotFoundError,
    PipcookFramework,
    PipcookScript,
    PipelineWorkspace,
    ScriptContext,
    ScriptType,
)

__all__ = [
    "Costa",
    "CostaOption",
    "ContextNotInitializedError",
    "EntryPointNotFoundError",
    "PipcookFramework",
    "PipcookScript",
    "PipelineWorkspace",
    "ScriptContext",
    "ScriptType",
]
