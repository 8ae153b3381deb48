"""
Fixtures for end-to-end tests.

Wires a real orchestrator whose only fakes are the persistent
environment, PATH lookup, the query runner and operator input.
"""

import pytest

from cachemover.cli.prompts import Prompter
from cachemover.cli.report import ConsoleReporter
from cachemover.core.environment import EnvironmentConfigurator
from cachemover.orchestrator import MigrationOrchestrator
from cachemover.toolchain.detector import ToolchainDetector
from cachemover.toolchain.migrator import CacheMigrator
from cachemover.toolchain.registry import ToolchainRegistry
from cachemover.toolchain.verifier import Verifier
from tests.mocks import FakeRunner, MemoryEnvironmentStore, ScriptedInput


@pytest.fixture
def registry(npm_spec, nuget_spec, maven_spec):
    return ToolchainRegistry(toolchains=[npm_spec, nuget_spec, maven_spec])


@pytest.fixture
def make_orchestrator(registry):
    """
    Build an orchestrator around a given store, input and query output.

    Every tool-chain in the registry counts as installed.
    """

    def _make(store, answers=(), query_output="", assume_yes=False):
        runner = FakeRunner(stdout=query_output)
        orchestrator = MigrationOrchestrator(
            registry=registry,
            detector=ToolchainDetector(which=lambda command: True),
            migrator=CacheMigrator(),
            configurator=EnvironmentConfigurator(store),
            verifier=Verifier(store, runner=runner),
            prompter=Prompter(
                input_func=ScriptedInput(list(answers)), assume_yes=assume_yes
            ),
            reporter=ConsoleReporter(quiet=True),
        )
        return orchestrator, runner

    return _make


@pytest.fixture
def store():
    return MemoryEnvironmentStore()
