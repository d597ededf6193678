"""
Costa: the runner that executes the scripts of a pipeline.

The runtime builds one Costa per pipeline run, calls `init_framework()` once
and then drives the three stage entry points in pipeline order:

    dataset = await costa.run_data_source(datasource_script)
    dataset = await costa.run_dataflow(dataset, dataflow_scripts)
    await costa.run_model(dataset, model_script, options)

Every stage runs to completion before the next one starts. Loading errors
and script errors reach the caller unchanged, and nothing is retried.
"""
import inspect
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from costa.core.logging import get_logger
from costa.runtime.context import ScriptContext, build_script_context
from costa.runtime.errors import ContextNotInitializedError
from costa.runtime.loader import ScriptLoader
from costa.runtime.types import CostaOption, DatasetHandle, PipcookScript, ScriptType

logger = get_logger("runtime.costa")


async def call_entry(fn: Callable, *args: Any) -> Any:
    """Call a stage entry and await its result when it returns an awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class Costa:
    """
    The pipeline runner who executes the scripts in the pipeline.

    Args:
        options: Workspace directories and framework descriptor, either a
            CostaOption or a mapping with `workspace` and `framework` keys
        loader: Script loader, replaceable for tests
    """

    def __init__(
        self,
        options: Union[CostaOption, Mapping[str, Any]],
        loader: Optional[ScriptLoader] = None,
    ):
        if not isinstance(options, CostaOption):
            options = CostaOption.model_validate(options)
        self.options = options
        self.loader = loader or ScriptLoader()
        self._context: Optional[ScriptContext] = None

    @property
    def context(self) -> ScriptContext:
        """The script context; only available after `init_framework()`."""
        if self._context is None:
            raise ContextNotInitializedError("access the script context")
        return self._context

    @property
    def initialized(self) -> bool:
        return self._context is not None

    async def init_framework(self) -> ScriptContext:
        """
        Bind the native and managed package roots and build the script context.

        Calling it again rebuilds the context from the current options, so
        later native imports resolve against the new framework directory.
        """
        framework = self.options.framework
        logger.info(
            f"Initializing framework {framework.name or '<unnamed>'} "
            f"from {self.options.workspace.framework_dir}"
        )
        self._context = build_script_context(self.options.workspace, framework)
        return self._context

    def _require_context(self, operation: str) -> ScriptContext:
        if self._context is None:
            raise ContextNotInitializedError(operation)
        return self._context

    async def import_script(self, script: PipcookScript, stage_type: ScriptType) -> Callable:
        """Import a script and make sure its entry for `stage_type` is callable."""
        return await self.loader.load(script, stage_type)

    async def run_data_source(self, script: PipcookScript) -> DatasetHandle:
        """
        Run a datasource script.

        Args:
            script: The metadata of the script

        Returns:
            The dataset handle produced by the script
        """
        context = self._require_context(f"run datasource {script.name}")
        logger.debug(f"start loading the script({script.name})")
        fn = await self.import_script(script, ScriptType.DataSource)
        logger.debug(f"loaded the script({script.name}), start it.")
        return await call_entry(fn, dict(script.query), context)

    async def run_dataflow(
        self,
        dataset: DatasetHandle,
        scripts: List[PipcookScript],
    ) -> DatasetHandle:
        """
        Run dataflow scripts in order, each consuming the previous result.

        Args:
            dataset: Handle from the datasource script or an earlier dataflow
            scripts: Dataflow scripts, applied left to right

        Returns:
            The handle returned by the last script, or `dataset` if there are none
        """
        context = self._require_context("run dataflow")
        for script in scripts:
            logger.debug(f"start loading the script({script.name})")
            fn = await self.import_script(script, ScriptType.Dataflow)
            logger.debug(f"loaded the script({script.name}), start it.")
            dataset = await call_entry(fn, dataset, dict(script.query), context)
        return dataset

    async def run_model(
        self,
        dataset: DatasetHandle,
        script: PipcookScript,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Run a model script.

        The script receives `options["train"]` merged with its own query,
        query keys taking precedence.

        Args:
            dataset: Handle from the datasource or dataflow scripts
            script: The metadata of the script
            options: Options of the pipeline
        """
        context = self._require_context(f"run model {script.name}")
        logger.debug(f"start loading the script({script.name})")
        fn = await self.import_script(script, ScriptType.Model)
        logger.debug(f"loaded the script({script.name}), start it.")
        opts: Dict[str, Any] = {
            **((options or {}).get("train") or {}),
            **script.query,
        }
        await call_entry(fn, dataset, opts, context)
