"""
Pipeline definition parser.

Supports this shape, as YAML or JSON:
```yaml
datasource: "file:///abs/path/datasource.py?url=/data/mnist&limit=100"
dataflow:
  - "./resize.py?size=28"
  - name: normalize
    path: ./normalize.py
    query:
      mean: 0.5
model: "./model.py?modelDir=out"
options:
  framework: tfjs@3.8
  train:
    epochs: 10
```

Script entries are either URI strings (`file://` or a plain path, with an
optional query string) or mappings with `name`, `path` and `query`. Relative
paths are resolved against the directory of the definition file.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, unquote, urlsplit

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from costa.core.config import settings
from costa.core.logging import get_logger
from costa.runtime.types import PipcookFramework, PipcookScript, ScriptType

logger = get_logger("pipeline.definition")


class PipelineDefinitionError(Exception):
    """Pipeline definition error with the location of the offending entry."""
    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.path:
            return f"{self.message} at path: {self.path}"
        return self.message


class PipelineDefinition(BaseModel):
    """A parsed pipeline: one datasource, a dataflow chain and one model."""
    datasource: PipcookScript
    dataflow: List[PipcookScript] = Field(default_factory=list)
    model: PipcookScript
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def train_options(self) -> Dict[str, Any]:
        return dict(self.options.get("train") or {})


def parse_query(query: str) -> Dict[str, Any]:
    """Parse a query string; repeated keys become lists."""
    parsed = parse_qs(query, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def _resolve_path(raw_path: str, base_dir: Optional[Path]) -> str:
    path = Path(raw_path).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return str(path)


def parse_script(
    entry: Union[str, Dict[str, Any]],
    script_type: ScriptType,
    base_dir: Optional[Path] = None,
    location: str = "",
) -> PipcookScript:
    """
    Build a PipcookScript from a definition entry.

    Args:
        entry: URI string or mapping with name/path/query
        script_type: Stage kind the entry is declared under
        base_dir: Directory relative paths are resolved against
        location: Path of the entry inside the definition, for errors

    Raises:
        PipelineDefinitionError: If the entry is malformed
    """
    if isinstance(entry, str):
        if not entry.strip():
            raise PipelineDefinitionError("Script entry must not be empty", location)

        parts = urlsplit(entry)
        if parts.scheme == "file":
            raw_path, query = unquote(parts.path), parts.query
        elif len(parts.scheme) > 1:
            raise PipelineDefinitionError(
                f"Unsupported script scheme '{parts.scheme}', scripts must be local files",
                location,
            )
        else:
            # Plain path, possibly a Windows drive path.
            raw_path, _, query = entry.partition("?")

        path = _resolve_path(raw_path, base_dir)
        return PipcookScript(
            name=Path(path).stem,
            path=path,
            query=parse_query(query),
            type=script_type,
        )

    if isinstance(entry, dict):
        raw_path = entry.get("path")
        if not isinstance(raw_path, str) or not raw_path:
            raise PipelineDefinitionError("Script mapping requires a 'path'", location)
        query = entry.get("query") or {}
        if not isinstance(query, dict):
            raise PipelineDefinitionError("Script 'query' must be a mapping", f"{location}.query")

        path = _resolve_path(raw_path, base_dir)
        return PipcookScript(
            name=entry.get("name") or Path(path).stem,
            path=path,
            query=query,
            type=script_type,
        )

    raise PipelineDefinitionError(
        f"Script entry must be a string or a mapping, got {type(entry).__name__}",
        location,
    )


def parse_pipeline_definition(data: Any, base_dir: Optional[Path] = None) -> PipelineDefinition:
    """
    Build a PipelineDefinition from already-decoded data.

    Raises:
        PipelineDefinitionError: If required stages are missing or malformed
    """
    if not isinstance(data, dict):
        raise PipelineDefinitionError("Pipeline root must be a mapping/object")

    for key in ("datasource", "model"):
        if not data.get(key):
            raise PipelineDefinitionError(f"'{key}' script is required", key)

    dataflow_data = data.get("dataflow") or []
    if not isinstance(dataflow_data, list):
        raise PipelineDefinitionError("'dataflow' must be a list", "dataflow")

    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise PipelineDefinitionError("'options' must be a mapping", "options")
    train = options.get("train")
    if train is not None and not isinstance(train, dict):
        raise PipelineDefinitionError("'options.train' must be a mapping", "options.train")

    return PipelineDefinition(
        datasource=parse_script(data["datasource"], ScriptType.DataSource, base_dir, "datasource"),
        dataflow=[
            parse_script(entry, ScriptType.Dataflow, base_dir, f"dataflow[{i}]")
            for i, entry in enumerate(dataflow_data)
        ],
        model=parse_script(data["model"], ScriptType.Model, base_dir, "model"),
        options=options,
    )


def load_pipeline_definition(path: Union[str, Path]) -> PipelineDefinition:
    """
    Read a pipeline definition file (YAML or JSON).

    Raises:
        PipelineDefinitionError: If the file is unreadable or invalid
    """
    definition_path = Path(path).expanduser().resolve()
    try:
        content = definition_path.read_text(encoding="utf-8")
    except OSError as e:
        raise PipelineDefinitionError(f"Cannot read pipeline definition: {e}", str(definition_path))

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PipelineDefinitionError(f"Invalid YAML syntax: {e}", str(definition_path))

    definition = parse_pipeline_definition(data, definition_path.parent)
    logger.info(
        f"Loaded pipeline {definition_path.name}: datasource={definition.datasource.name}, "
        f"{len(definition.dataflow)} dataflow scripts, model={definition.model.name}"
    )
    return definition


def load_framework_descriptor(framework_dir: Union[str, Path]) -> PipcookFramework:
    """
    Read the framework descriptor stored in `framework_dir`.

    A missing descriptor file yields the default package layout.

    Raises:
        PipelineDefinitionError: If the descriptor exists but is invalid
    """
    descriptor_path = os.path.join(str(framework_dir), settings.framework_descriptor_file)
    if not os.path.isfile(descriptor_path):
        logger.debug(f"No framework descriptor at {descriptor_path}, using defaults")
        return PipcookFramework()

    try:
        with open(descriptor_path, encoding="utf-8") as f:
            data = json.load(f)
        return PipcookFramework.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise PipelineDefinitionError(f"Invalid framework descriptor: {e}", descriptor_path)
