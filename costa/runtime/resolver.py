"""
Module resolution for the two package ecosystems a script can import from.

The managed ecosystem is the host interpreter: modules are looked up in the
framework's managed package directory first and then on the host, whose
path lookups search a snapshot of sys.path taken when the resolver is built.
The native ecosystem is the framework's numerical/ML package root, reached
through a NativeBridge that belongs to a single runner.

A package root is only put on sys.path while the module it provides is being
executed, so two runners configured with different frameworks never leave
their roots behind in the interpreter-wide search path.
"""
import importlib
import importlib.machinery
import importlib.util
import os
import sys
from contextlib import contextmanager, nullcontext
from importlib.machinery import ModuleSpec
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterator, List, Optional, Sequence, Set

from costa.core.logging import get_logger

logger = get_logger("runtime.resolver")


@contextmanager
def search_root(root: str) -> Iterator[None]:
    """Prepend `root` to sys.path while a synchronous import runs."""
    added = root not in sys.path
    if added:
        sys.path.insert(0, root)
    try:
        yield
    finally:
        if added and root in sys.path:
            sys.path.remove(root)


def module_location(module: ModuleType) -> Optional[Path]:
    """Directory or file a module was loaded from, if it has one."""
    search_locations = getattr(module, "__path__", None)
    location = next(iter(search_locations or ()), None)
    if location:
        return Path(location).resolve()
    filename = getattr(module, "__file__", None)
    if filename:
        return Path(filename).resolve()
    return None


def is_loaded_from(module: ModuleType, root: str) -> bool:
    location = module_location(module)
    if location is None:
        return False
    return location.is_relative_to(Path(root).resolve())


def _evict(top_level: str) -> None:
    """Drop a top-level package and its submodules from sys.modules."""
    for key in [k for k in sys.modules if k == top_level or k.startswith(top_level + ".")]:
        del sys.modules[key]


# Every package root a resolver has been created for. Modules loaded from one
# of these must not be handed to a resolver bound to a different root.
_framework_roots: Set[str] = set()


def loaded_from_other_root(module: ModuleType, root: str) -> bool:
    """True if `module` came from a framework root other than `root`."""
    return any(
        is_loaded_from(module, other)
        for other in list(_framework_roots)
        if other != root
    )


def find_host_spec(top_level: str, host_paths: Sequence[str]) -> Optional[ModuleSpec]:
    """
    Find a top-level module on the host.

    Path-based lookups only search `host_paths`. The other meta path finders
    (builtin, frozen, editable installs) are asked as they are.
    """
    for finder in sys.meta_path:
        if finder is importlib.machinery.PathFinder:
            spec = finder.find_spec(top_level, list(host_paths))
        else:
            find_spec = getattr(finder, "find_spec", None)
            if find_spec is None:
                continue
            spec = find_spec(top_level, None)
        if spec is not None:
            return spec
    return None


def _exec_top_level(top_level: str, spec: ModuleSpec, root: Optional[str] = None) -> ModuleType:
    """Execute `spec` as the top-level package, restoring the old entry on failure."""
    current = sys.modules.get(top_level)
    if current is not None:
        _evict(top_level)

    module = importlib.util.module_from_spec(spec)
    sys.modules[top_level] = module
    with search_root(root) if root else nullcontext():
        try:
            spec.loader.exec_module(module)
        except Exception:
            sys.modules.pop(top_level, None)
            if current is not None:
                sys.modules[top_level] = current
            raise
    return sys.modules[top_level]


def load_from_root(name: str, root: str) -> Optional[ModuleType]:
    """
    Import `name` with its top-level package taken from `root`.

    Returns None when `root` does not provide the top-level package. A copy of
    the package previously loaded from elsewhere is replaced in sys.modules.

    Args:
        name: Dotted module name
        root: Directory searched for the top-level package

    Returns:
        The imported module, or None if `root` has no such package
    """
    top_level = name.partition(".")[0]
    current = sys.modules.get(top_level)

    if current is None or not is_loaded_from(current, root):
        spec = importlib.machinery.PathFinder.find_spec(top_level, [root])
        if spec is None or spec.loader is None:
            return None
        if current is not None:
            logger.debug(f"Replacing '{top_level}' with the copy from {root}")
        _exec_top_level(top_level, spec, root)

    if name == top_level:
        return sys.modules[top_level]

    with search_root(root):
        return importlib.import_module(name)


def _name_prefixes(name: str) -> List[str]:
    parts = name.split(".")
    return [".".join(parts[:i]) for i in range(1, len(parts) + 1)]


class PackageRootResolver:
    """
    Resolves module names against one package root, then the host.

    The host step searches `host_paths`, a snapshot of sys.path taken when the
    resolver is built unless given explicitly. A module another resolver loaded
    from its own root is never returned from the host step.

    Subclasses name the ecosystem they serve so failures say where the lookup
    happened.
    """

    ecosystem = "python"

    def __init__(self, root: str, host_paths: Optional[Sequence[str]] = None):
        self.root = str(root)
        self.host_paths = list(sys.path if host_paths is None else host_paths)
        _framework_roots.add(self.root)

    @property
    def search_paths(self) -> List[str]:
        return [self.root, *self.host_paths]

    def _not_found(self, name: str) -> ModuleNotFoundError:
        return ModuleNotFoundError(
            f"No {self.ecosystem} module named '{name}' "
            f"(searched {self.root} and the host import path)",
            name=name,
        )

    def _resolve_on_host(self, name: str) -> ModuleType:
        top_level = name.partition(".")[0]
        current = sys.modules.get(top_level)

        if current is None or loaded_from_other_root(current, self.root):
            spec = find_host_spec(top_level, self.host_paths)
            if spec is None or spec.loader is None:
                raise self._not_found(name)
            if current is not None:
                logger.debug(
                    f"'{top_level}' was loaded from another framework root, "
                    f"using the host copy for {self.root}"
                )
            _exec_top_level(top_level, spec)

        if name == top_level:
            return sys.modules[top_level]
        try:
            return importlib.import_module(name)
        except ModuleNotFoundError as e:
            # A missing transitive dependency is reported as-is.
            if e.name not in _name_prefixes(name):
                raise
            raise self._not_found(name) from e

    def _resolve(self, name: str) -> ModuleType:
        if os.path.isdir(self.root):
            module = load_from_root(name, self.root)
            if module is not None:
                logger.debug(f"Resolved {self.ecosystem} module '{name}' from {self.root}")
                return module

        return self._resolve_on_host(name)

    async def resolve(self, name: str) -> ModuleType:
        return self._resolve(name)


class ManagedModuleResolver(PackageRootResolver):
    """Resolver for modules shipped in the framework's managed package directory."""

    ecosystem = "managed"

    def __init__(self, package_dir: str, host_paths: Optional[Sequence[str]] = None):
        super().__init__(package_dir, host_paths)


class NativeBridge(PackageRootResolver):
    """
    Bridge to the framework's native package root.

    Each runner owns its own bridge, so the root is explicit on every import.
    Modules are cached per bridge: repeated imports return the object this
    bridge resolved, even if another bridge has since loaded a package with the
    same name from a different root.
    """

    ecosystem = "native"

    def __init__(self, root: str, host_paths: Optional[Sequence[str]] = None):
        super().__init__(root, host_paths)
        self._modules: Dict[str, ModuleType] = {}

    async def import_module(self, package_name: str) -> ModuleType:
        """Import `package_name` from this bridge's root."""
        cached = self._modules.get(package_name)
        if cached is not None:
            return cached

        module = self._resolve(package_name)
        self._modules[package_name] = module
        return module

    async def resolve(self, name: str) -> ModuleType:
        return await self.import_module(name)
