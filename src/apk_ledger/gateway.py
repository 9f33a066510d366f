"""
Boundary to the external package-analysis engine.

The engine is any async callable ``invoke(command, payload) -> dict``. This
module turns its reply into an ``AnalysisResult`` or an ``AnalysisFailure``
and does nothing else: no retries, no caching, no history.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Awaitable, Callable, Mapping

from apk_ledger import codec
from apk_ledger.exceptions import AnalysisFailure, EngineConfigError
from apk_ledger.models import AnalysisResult, InputKind, PackageInput

logger = logging.getLogger(__name__)

ANALYZE_COMMAND = "analyze_package"

EngineInvoke = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


def build_payload(package: PackageInput) -> dict[str, Any]:
    if package.kind == InputKind.PATH:
        return {"path": package.path}
    return {"data": package.data, "file_name": package.display_name}


class AnalyzerGateway:
    def __init__(self, invoke: EngineInvoke) -> None:
        self._invoke = invoke

    async def analyze(self, package: PackageInput) -> AnalysisResult:
        """
        Ask the engine to analyze one package.

        Raises:
            AnalysisFailure: The engine reported an error, the call itself
                failed, or the reply was not a valid analysis result.
        """
        try:
            reply = await self._invoke(ANALYZE_COMMAND, build_payload(package))
        except AnalysisFailure:
            raise
        except Exception as exc:
            logger.debug("Engine call failed for %s", package.display_name, exc_info=True)
            raise AnalysisFailure(str(exc) or type(exc).__name__) from exc

        try:
            return codec.result_from_dict(reply)
        except (TypeError, ValueError, OverflowError, RecursionError) as exc:
            raise AnalysisFailure(f"Malformed analysis result: {exc}") from exc


def load_engine(spec: str) -> EngineInvoke:
    """Resolve ``"package.module:callable"`` to an engine invoke function."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise EngineConfigError(f"Engine must look like 'module:callable', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineConfigError(f"Cannot import engine module '{module_name}': {exc}") from exc
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise EngineConfigError(f"Engine module '{module_name}' has no attribute '{attr}'")
    if not callable(target):
        raise EngineConfigError(f"Engine '{spec}' is not callable")
    return target
