"""
Pipeline package: definition parsing and end-to-end sequencing.

Main entry points:
- load_pipeline_definition(): Parse a YAML/JSON pipeline file
- PipelineRunner: Run a parsed pipeline with a Costa runner
"""
from costa.pipeline.definition import (
    PipelineDefinition,
    PipelineDefinitionError,
    load_framework_descriptor,
    load_pipeline_definition,
    parse_pipeline_definition,
    parse_script,
)
from costa.pipeline.runner import (
    PipelineRunner,
    PipelineRunResult,
    StageRun,
    StageStatus,
)

__all__ = [
    # Definition
    "PipelineDefinition",
    "PipelineDefinitionError",
    "load_framework_descriptor",
    "load_pipeline_definition",
    "parse_pipeline_definition",
    "parse_script",

    # Runner
    "PipelineRunner",
    "PipelineRunResult",
    "StageRun",
    "StageStatus",
]
