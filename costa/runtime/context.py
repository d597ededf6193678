"""
The script context handed to every stage of a pipeline run.
"""
import os
from dataclasses import dataclass
from types import ModuleType
from typing import Awaitable, Callable

from costa.core.logging import get_logger
from costa.runtime.resolver import ManagedModuleResolver, NativeBridge
from costa.runtime.types import PipcookFramework, PipelineWorkspace

logger = get_logger("runtime.context")


ModuleImporter = Callable[[str], Awaitable[ModuleType]]


@dataclass(frozen=True)
class ScriptContext:
    """
    Import capabilities and workspace paths shared by all stages.

    Built once per runner and never mutated afterwards; every stage receives
    the same instance.

    Attributes:
        import_managed: Coroutine importing a module from the managed ecosystem
        import_native: Coroutine importing a package through the native bridge
        workspace: Copy of the run's workspace directories
    """
    import_managed: ModuleImporter
    import_native: ModuleImporter
    workspace: PipelineWorkspace

    @property
    def import_js(self) -> ModuleImporter:
        return self.import_managed

    @property
    def import_py(self) -> ModuleImporter:
        return self.import_native


def build_script_context(
    workspace: PipelineWorkspace,
    framework: PipcookFramework,
) -> ScriptContext:
    """
    Bind both importers to the framework directory and bundle the workspace.

    Args:
        workspace: Directories of the current run
        framework: Descriptor naming the package roots inside framework_dir

    Returns:
        A fresh ScriptContext with its own native bridge
    """
    native_root = os.path.join(workspace.framework_dir, framework.native_root)
    managed_root = os.path.join(workspace.framework_dir, framework.managed_root)

    bridge = NativeBridge(native_root)
    managed = ManagedModuleResolver(managed_root)

    logger.info(
        f"Script context ready: native root {native_root}, "
        f"managed root {managed_root}"
    )

    async def import_managed(module_id: str) -> ModuleType:
        return await managed.resolve(module_id)

    async def import_native(package_name: str) -> ModuleType:
        return await bridge.import_module(package_name)

    return ScriptContext(
        import_managed=import_managed,
        import_native=import_native,
        workspace=workspace.model_copy(),
    )
