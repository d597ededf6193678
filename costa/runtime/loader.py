"""
Plugin script loading and entry point resolution.

Scripts are plain Python files. Authors may expose their stage entry in
several shapes, tried in this order:

1. the module itself is callable (the script replaced its sys.modules entry
   with a function or a callable object)
2. a member named after the stage type: `datasource`, `dataflow` or `model`
3. a member named `default`

The first candidate that is callable wins.
"""
import hashlib
import importlib.util
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from costa.core.config import settings
from costa.core.logging import get_logger
from costa.runtime.errors import EntryPointNotFoundError
from costa.runtime.types import PipcookScript, ScriptType

logger = get_logger("runtime.loader")


def script_module_name(script_path: Path) -> str:
    """Deterministic sys.modules name for a script file."""
    path_key = str(script_path).replace("\\", "/").encode("utf-8")
    path_hash = hashlib.sha1(path_key).hexdigest()[:16]
    return f"{settings.script_module_prefix}_{script_path.stem}_{path_hash}"


def import_from(path: str) -> Any:
    """
    Execute the script at `path` as a fresh module.

    The module is registered in sys.modules before it runs so that dataclasses,
    pickling and self-replacement work; it is removed again if execution fails.

    Returns:
        Whatever sits in sys.modules under the script's name after execution,
        normally the module object itself

    Raises:
        ModuleNotFoundError: If the file does not exist or cannot be loaded
    """
    script_path = Path(path).expanduser().resolve()
    module_name = script_module_name(script_path)

    if not script_path.is_file():
        raise ModuleNotFoundError(f"Script not found: {script_path}", name=module_name, path=str(script_path))

    spec = importlib.util.spec_from_file_location(module_name, str(script_path))
    if spec is None or spec.loader is None:
        raise ModuleNotFoundError(
            f"Cannot create module spec for {script_path}", name=module_name, path=str(script_path)
        )

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise

    return sys.modules.get(module_name, module)


def entry_candidates(script_module: Any, stage_type: ScriptType) -> List[Tuple[str, Any]]:
    """Ordered (label, value) pairs an entry point is picked from."""
    return [
        ("module", script_module),
        (stage_type.entry_name, getattr(script_module, stage_type.entry_name, None)),
        ("default", getattr(script_module, "default", None)),
    ]


def resolve_entry(script_module: Any, stage_type: ScriptType) -> Optional[Tuple[str, Callable]]:
    for label, candidate in entry_candidates(script_module, stage_type):
        if callable(candidate):
            return label, candidate
    return None


class ScriptLoader:
    """Loads pipeline scripts and hands back their stage entry point."""

    def __init__(self, importer: Callable[[str], Any] = import_from):
        self._importer = importer

    async def load(self, script: PipcookScript, stage_type: ScriptType) -> Callable:
        """
        Import a script and return its entry for `stage_type`.

        Raises:
            ModuleNotFoundError: If the script file cannot be loaded
            EntryPointNotFoundError: If no candidate export is callable
        """
        script_module = self._importer(script.path)
        resolved = resolve_entry(script_module, stage_type)
        if resolved is None:
            raise EntryPointNotFoundError(script.name, script.path)

        label, fn = resolved
        logger.debug(f"Using '{label}' export of {script.name} as {stage_type.value} entry")
        return fn
