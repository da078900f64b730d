"""Shared fixtures and sample decision programs."""

from __future__ import annotations

import io
import textwrap

import pytest
from hypothesis import HealthCheck, settings

from pyreach.analysis.normalizer import PredicateNormalizer
from pyreach.config import AnalysisConfig, ExecutorConfig, SolverConfig
from pyreach.core.program import CompileSuccess, compile_source
from pyreach.logging import LogLevel, PyReachLogger, set_logger

settings.register_profile(
    "pyreach",
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("pyreach")


def program(body: str) -> str:
    """Wrap a statement block into ``def evaluate(parameters):``."""
    return "def evaluate(parameters):\n" + textwrap.indent(textwrap.dedent(body).strip(), "    ") + "\n"


SAMPLE_1 = program(
    """
    x = 1
    if parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
        x = 4
        if parameters[2]:
            x = 5
    if parameters[3]:
        x = 6
    return x
    """
)

SAMPLE_2 = program(
    """
    x = 1
    if parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
        x = 4
        if parameters[2]:
            if parameters[3]:
                x = 6
            if parameters[4]:
                x = 5
    return x
    """
)

DEAD_SAME_IF = program(
    """
    x = 1
    if parameters[0] and not parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
    return x
    """
)

DEAD_EQUALS = program(
    """
    x = 1
    if parameters[0]:
        x = 2
        if parameters[0] == True and parameters[0] == False:
            x = 3
    return x
    """
)

DEAD_NESTED = program(
    """
    x = 1
    if parameters[0]:
        x = 2
        if parameters[1]:
            x = 3
            if not parameters[0]:
                x = 4
    return x
    """
)

WITH_ARITHMETIC = program(
    """
    x = 1
    if parameters[30]:
        x = 2
        if x + 1 - 1 == 2:
            x = 3
            if parameters[31]:
                x = 4
    return x
    """
)

WITHOUT_ARITHMETIC = program(
    """
    x = 1
    if parameters[30]:
        x = 2
        if x == 2:
            x = 3
            if parameters[31]:
                x = 4
    return x
    """
)

CONSTANT_INDEX = program(
    """
    x = 1
    if parameters[22]:
        x = 2
        if parameters[23 - 1]:
            x = 3
    return x
    """
)

NON_CONSTANT_INDEX = program(
    """
    x = 1
    if parameters[22]:
        x = 2
        if parameters[24 - x]:
            x = 3
    return x
    """
)

THRESHOLD = program(
    """
    x = 1
    if parameters[0]:
        if parameters[20]:
            x = 2
    return x
    """
)

NO_PARAMS = program(
    """
    x = 1
    return x
    """
)

ELEVEN_LITERALS = program(
    "x = 1\n"
    + "".join(f"if parameters[{i}]:\n    x = {i + 2}\n" for i in range(10))
    + "return x"
)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Route the global logger to a buffer for every test."""
    logger = PyReachLogger(level=LogLevel.DEBUG, color=False, stream=io.StringIO())
    set_logger(logger)
    yield logger
    logger.close()


@pytest.fixture
def solver_config() -> SolverConfig:
    return SolverConfig(analysis=AnalysisConfig(), executor=ExecutorConfig(max_workers=2))


@pytest.fixture
def padded_config() -> SolverConfig:
    return SolverConfig(
        analysis=AnalysisConfig(),
        executor=ExecutorConfig(max_workers=2, vector_encoding="padded"),
    )


@pytest.fixture
def compile_program():
    """Compile a source with the predicate normalizer applied."""

    def _compile(source: str) -> CompileSuccess:
        result = compile_source(source, rewriters=[PredicateNormalizer()])
        assert isinstance(result, CompileSuccess), result
        return result

    return _compile
