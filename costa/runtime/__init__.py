"""
Execution core of the pipeline runner.

- Costa: runs datasource, dataflow and model scripts in order
- ScriptLoader: loads a script file and picks its stage entry
- ScriptContext: import capabilities and workspace shared by all stages
- ManagedModuleResolver / NativeBridge: per-ecosystem module resolution
"""
from costa.runtime.context import ScriptContext, build_script_context
from costa.runtime.costa import Costa
from costa.runtime.errors import ContextNotInitializedError, EntryPointNotFoundError
from costa.runtime.loader import ScriptLoader, import_from, resolve_entry
from costa.runtime.resolver import ManagedModuleResolver, NativeBridge
from costa.runtime.types import (
    CostaOption,
    DatasetHandle,
    PipcookFramework,
    PipcookScript,
    PipelineWorkspace,
    ScriptType,
)

__all__ = [
    # Runner
    "Costa",
    "ScriptContext",
    "build_script_context",

    # Loading and resolution
    "ScriptLoader",
    "import_from",
    "resolve_entry",
    "ManagedModuleResolver",
    "NativeBridge",

    # Errors
    "ContextNotInitializedError",
    "EntryPointNotFoundError",

    # Types
    "CostaOption",
    "DatasetHandle",
    "PipcookFramework",
    "PipcookScript",
    "PipelineWorkspace",
    "ScriptType",
]
