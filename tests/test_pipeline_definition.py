"""
Tests for pipeline definition parsing.

Verifies that:
- URI, plain path and mapping script entries are accepted
- Relative paths resolve against the definition file
- Invalid definitions are rejected with the offending location
"""
import json
import textwrap

import pytest

from costa.pipeline.definition import (
    PipelineDefinitionError,
    load_framework_descriptor,
    load_pipeline_definition,
    parse_pipeline_definition,
    parse_script,
)
from costa.runtime.types import ScriptType


class TestParseScript:

    def test_file_uri_with_query(self):
        script = parse_script("file:///opt/scripts/mnist.py?url=/data/x&limit=10", ScriptType.DataSource)
        assert script.name == "mnist"
        assert script.path == "/opt/scripts/mnist.py"
        assert script.query == {"url": "/data/x", "limit": "10"}
        assert script.type == ScriptType.DataSource

    def test_repeated_query_keys_become_lists(self):
        script = parse_script("/s/resize.py?size=28&size=32", ScriptType.Dataflow)
        assert script.query == {"size": ["28", "32"]}

    def test_relative_path_resolved_against_base_dir(self, tmp_path):
        script = parse_script("./flows/resize.py", ScriptType.Dataflow, base_dir=tmp_path)
        assert script.path == str(tmp_path / "flows" / "resize.py")
        assert script.query == {}

    def test_mapping_entry(self, tmp_path):
        entry = {"name": "norm", "path": "normalize.py", "query": {"mean": 0.5}}
        script = parse_script(entry, ScriptType.Dataflow, base_dir=tmp_path)
        assert script.name == "norm"
        assert script.path == str(tmp_path / "normalize.py")
        assert script.query == {"mean": 0.5}

    def test_remote_scheme_rejected(self):
        with pytest.raises(PipelineDefinitionError) as exc_info:
            parse_script("https://example.com/model.py", ScriptType.Model, location="model")
        assert "https" in str(exc_info.value)
        assert exc_info.value.path == "model"

    @pytest.mark.parametrize("entry", ["", 42, {"name": "x"}, {"path": "a.py", "query": [1]}])
    def test_malformed_entries(self, entry):
        with pytest.raises(PipelineDefinitionError):
            parse_script(entry, ScriptType.Model, location="model")


class TestParsePipelineDefinition:

    def test_minimal_pipeline(self):
        definition = parse_pipeline_definition({
            "datasource": "/s/ds.py",
            "model": "/s/model.py?epochs=1",
        })
        assert definition.dataflow == []
        assert definition.train_options == {}
        assert definition.model.query == {"epochs": "1"}

    def test_dataflow_order_preserved(self):
        definition = parse_pipeline_definition({
            "datasource": "/s/ds.py",
            "dataflow": ["/s/a.py", "/s/b.py", "/s/c.py"],
            "model": "/s/model.py",
            "options": {"train": {"epochs": 3}},
        })
        assert [s.name for s in definition.dataflow] == ["a", "b", "c"]
        assert all(s.type == ScriptType.Dataflow for s in definition.dataflow)
        assert definition.train_options == {"epochs": 3}

    @pytest.mark.parametrize("data, location", [
        ([], ""),
        ({"model": "/s/m.py"}, "datasource"),
        ({"datasource": "/s/d.py"}, "model"),
        ({"datasource": "/s/d.py", "model": "/s/m.py", "dataflow": "/s/a.py"}, "dataflow"),
        ({"datasource": "/s/d.py", "model": "/s/m.py", "options": {"train": 1}}, "options.train"),
        ({"datasource": "/s/d.py", "model": "/s/m.py", "dataflow": ["/s/a.py", 3]}, "dataflow[1]"),
    ])
    def test_invalid_definitions(self, data, location):
        with pytest.raises(PipelineDefinitionError) as exc_info:
            parse_pipeline_definition(data)
        assert exc_info.value.path == location


class TestLoadFiles:

    def test_load_yaml_definition(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text(textwrap.dedent("""
            datasource: ./ds.py?limit=5
            dataflow:
              - ./resize.py
            model:
              name: classifier
              path: ./model.py
              query:
                lr: 0.1
            options:
              train:
                epochs: 2
        """))

        definition = load_pipeline_definition(path)
        assert definition.datasource.path == str(tmp_path / "ds.py")
        assert definition.datasource.query == {"limit": "5"}
        assert definition.dataflow[0].name == "resize"
        assert definition.model.name == "classifier"
        assert definition.model.query == {"lr": 0.1}
        assert definition.train_options == {"epochs": 2}

    def test_load_json_definition(self, tmp_path):
        path = tmp_path / "pipeline.json"
        path.write_text(json.dumps({"datasource": "ds.py", "model": "model.py"}))
        definition = load_pipeline_definition(path)
        assert definition.model.path == str(tmp_path / "model.py")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("datasource: [unclosed\n")
        with pytest.raises(PipelineDefinitionError, match="Invalid YAML"):
            load_pipeline_definition(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PipelineDefinitionError, match="Cannot read"):
            load_pipeline_definition(tmp_path / "absent.yaml")

    def test_framework_descriptor_defaults_when_absent(self, tmp_path):
        framework = load_framework_descriptor(tmp_path)
        assert framework.native_root == "site-packages"
        assert framework.managed_root == "node_modules"

    def test_framework_descriptor_read(self, tmp_path):
        (tmp_path / "framework.json").write_text(json.dumps({
            "name": "tfjs",
            "version": "3.8.0",
            "pythonPackagePath": "python/site-packages",
            "arch": "x64",
        }))
        framework = load_framework_descriptor(tmp_path)
        assert framework.name == "tfjs"
        assert framework.native_root == "python/site-packages"
        assert framework.managed_root == "node_modules"

    def test_framework_descriptor_invalid_json(self, tmp_path):
        (tmp_path / "framework.json").write_text("{not json")
        with pytest.raises(PipelineDefinitionError, match="framework descriptor"):
            load_framework_descriptor(tmp_path)
