"""
Data model shared by the runner, the loader and the plugin scripts.

- ScriptType: the three stage kinds a script can implement
- PipcookScript: a script descriptor produced by the pipeline definition
- PipelineWorkspace: the four directories a run works in
- PipcookFramework: which package roots inside the framework directory to use
- CostaOption: everything the runtime passes to construct a runner
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from costa.core.config import settings


# Opaque value threaded from the datasource through the dataflow chain into
# the model stage. Its shape belongs to the dataset library.
DatasetHandle = Any


class ScriptType(str, Enum):
    """Stage kind of a pipeline script."""
    DataSource = "datasource"
    Dataflow = "dataflow"
    Model = "model"

    @property
    def entry_name(self) -> str:
        """Name of the module member a script may export for this stage."""
        return self.value


class PipcookScript(BaseModel):
    """
    Descriptor of one pipeline script.

    Attributes:
        name: Script name used in logs and errors
        path: Filesystem path to the Python source
        query: Free-form options handed to the script entry
        type: Stage kind, when the definition states it
    """
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    query: Dict[str, Any] = Field(default_factory=dict)
    type: Optional[ScriptType] = None


class PipelineWorkspace(BaseModel):
    """Directories owned by the runtime for a single pipeline run."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data_dir: str = Field(validation_alias=AliasChoices("data_dir", "dataDir"))
    model_dir: str = Field(validation_alias=AliasChoices("model_dir", "modelDir"))
    cache_dir: str = Field(validation_alias=AliasChoices("cache_dir", "cacheDir"))
    framework_dir: str = Field(validation_alias=AliasChoices("framework_dir", "frameworkDir"))


class PipcookFramework(BaseModel):
    """
    Framework descriptor.

    Only the two package paths drive resolution; the remaining fields are
    carried for logging and for scripts that want to inspect them.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    version: Optional[str] = None
    desc: Optional[str] = None
    native_package_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "native_package_path", "nativePackagePath", "pythonPackagePath"
        ),
    )
    managed_package_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "managed_package_path", "managedPackagePath", "jsPackagePath"
        ),
    )

    @property
    def native_root(self) -> str:
        return self.native_package_path or settings.default_native_package_path

    @property
    def managed_root(self) -> str:
        return self.managed_package_path or settings.default_managed_package_path


class CostaOption(BaseModel):
    """Constructor options of `Costa`: workspace paths and framework info."""
    model_config = ConfigDict(frozen=True)

    workspace: PipelineWorkspace
    framework: PipcookFramework = Field(default_factory=PipcookFramework)
