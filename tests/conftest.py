import pytest

from genplay.compile import PluginCache, PluginCompiler, ProgramCompiler
from genplay.execution import InProcessExecutionHost
from genplay.references import (
    LocalLibrarySource,
    ReferenceSet,
    ReferenceSetProvider,
    StaticLibrarySource,
)
from genplay.runner import Runner

NO_OP_PLUGIN = """
from genplay.generators import SourceGenerator


class NoOpGenerator(SourceGenerator):
    def execute(self, context):
        pass
"""

SERVICE_LOCATOR_PLUGIN = """
from genplay.generators import SourceGenerator


class ServiceLocatorGenerator(SourceGenerator):
    def execute(self, context):
        context.add_source(
            "services",
            '''
class ServiceLocator:
    @staticmethod
    def get_greeting():
        return "Hello from the locator"
''',
        )
"""

SERVICE_LOCATOR_PROGRAM = """
import services


class Program:
    @staticmethod
    def Main():
        print(services.ServiceLocator.get_greeting())
"""

SILENT_PROGRAM = """
class Program:
    @staticmethod
    def Main():
        pass
"""


@pytest.fixture(scope="session")
def references() -> ReferenceSet:
    """The default reference set of the current interpreter."""
    return ReferenceSetProvider(LocalLibrarySource()).resolve()


@pytest.fixture
def provider(references: ReferenceSet) -> ReferenceSetProvider:
    return ReferenceSetProvider(StaticLibrarySource(references.values()))


@pytest.fixture
def runner(provider: ReferenceSetProvider) -> Runner:
    """A runner with a fresh plugin cache, running programs in process."""
    return Runner(
        provider,
        PluginCompiler(PluginCache(capacity=10)),
        ProgramCompiler(),
        InProcessExecutionHost(),
    )


@pytest.fixture
def no_op_plugin() -> str:
    return NO_OP_PLUGIN


@pytest.fixture
def service_locator_plugin() -> str:
    return SERVICE_LOCATOR_PLUGIN


@pytest.fixture
def service_locator_program() -> str:
    return SERVICE_LOCATOR_PROGRAM


@pytest.fixture
def silent_program() -> str:
    return SILENT_PROGRAM
