"""
@file engine.py
@brief Analysis engine contract and lifecycle management

Owns creation, scanning, analysis and guaranteed teardown of exactly one
engine instance per invocation.

@details
**Lifecycle:**
Created -> Scanning -> Analyzing -> (ReportReady | DatabaseOperationDone) -> Cleaned

The Cleaned state is always reached: engine_session() runs cleanup() in a
finally block, so the engine is closed and the settings are torn down once,
whether the session body succeeded or raised.

The engine itself is a collaborator described by the Engine protocol.
The bundled implementation lives in matching/nvd_engine.py; tests plug in
a fake.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, List, Protocol, Set

from nvd_check.caching.constants import ARTIFACT_EXTENSIONS
from nvd_check.core.errors import AnalysisError, EngineCreationError, NvdCheckError
from nvd_check.core.models import Dependency, Vulnerability

logger = logging.getLogger(__name__)


class Engine(Protocol):
    """Capabilities the orchestration layer needs from an analysis engine."""

    def scan(self, path) -> None: ...

    def analyze(self) -> None: ...

    def dependencies(self) -> List[Dependency]: ...

    def analyzers(self) -> List[str]: ...

    def update_database(self) -> None: ...

    def close(self) -> None: ...


def _default_engine_factory(settings):
    from nvd_check.matching.nvd_engine import NvdEngine

    return NvdEngine(settings)


def create_engine(settings, engine_factory=None) -> Engine:
    """
    Instantiate one engine for this invocation. No I/O happens here.

    @throws EngineCreationError if the factory fails
    """
    factory = engine_factory or _default_engine_factory
    try:
        engine = factory(settings)
    except Exception as e:
        raise EngineCreationError(f"Unable to create analysis engine: {e}") from e
    logger.debug(f"Created engine {type(engine).__name__}")
    return engine


def is_scannable(path) -> bool:
    """
    Whether a classpath entry is a packaged artifact the engine should scan.

    @param path str or Path Classpath entry

    @return bool True for recognized extensions (see ARTIFACT_EXTENSIONS)
    """
    return str(path).endswith(ARTIFACT_EXTENSIONS)


def scan_and_analyze(engine, classpath: Iterable) -> None:
    """
    Register every packaged artifact on the classpath, then run analysis.

    @param engine Engine Engine from create_engine()
    @param classpath iterable Paths from the configuration document; entries
                     without a recognized extension are ignored

    @throws AnalysisError if the engine fails while scanning or analyzing
    """
    try:
        for path in classpath or []:
            if is_scannable(path):
                logger.debug(f"Scanning {path}")
                engine.scan(str(path))
            else:
                logger.debug(f"Skipping {path}")
        engine.analyze()
    except NvdCheckError:
        raise
    except Exception as e:
        raise AnalysisError(f"Dependency analysis failed: {e}") from e
    logger.info(f"Analysis finished, {len(engine.dependencies())} dependencies")


def vulnerabilities(engine) -> Set[Vulnerability]:
    """
    Union of the findings of every dependency known to the engine.

    Recomputed from the engine on each call.
    """
    found = set()
    for dependency in engine.dependencies():
        found.update(dependency.vulnerabilities)
    return found


def cleanup(engine, settings) -> None:
    """Close the engine, then tear down the settings even if closing failed."""
    try:
        if engine is not None:
            engine.close()
            logger.debug("Engine closed")
    finally:
        settings.cleanup()


@contextmanager
def engine_session(settings, engine_factory=None):
    """
    Scoped engine acquisition.

    @code
    with engine_session(settings) as engine:
        scan_and_analyze(engine, classpath)
    @endcode

    Settings are released even when the engine cannot be created. When the
    body raises, a failure during cleanup is logged and the body's error is
    the one that propagates.
    """
    try:
        engine = create_engine(settings, engine_factory)
    except Exception:
        settings.cleanup()
        raise
    try:
        yield engine
    except BaseException:
        try:
            cleanup(engine, settings)
        except Exception:
            logger.error("Engine cleanup failed after an earlier error", exc_info=True)
        raise
    cleanup(engine, settings)
