"""
Shared pytest fixtures for all tests.

Provides compilers with the common configurations and a set of small
single-file components exercising the main pipeline paths.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Generator, List

import pytest

from sfc_compiler import SFCCompiler
from sfc_compiler.core.config import CompilerConfig
from sfc_compiler.core.diagnostics import DiagnosticsCollector
from sfc_compiler.core.models import SourceSpan, TemplateBlock

COUNTER_COMPONENT = """<script setup>
import { ref } from 'vue'
const count = ref(0)
</script>

<template>
  <button @click="count++">{{ count }}</button>
</template>
"""

OPTIONS_COMPONENT = """<script>
export default {
  props: ['title'],
  data() {
    return { items: [] }
  },
  methods: {
    add() {}
  }
}
</script>

<template>
  <h1>{{ title }}</h1>
  <ul>
    <li v-for="item in items" :key="item.id">{{ item.name }}</li>
  </ul>
  <button @click="add">Add</button>
</template>
"""

TYPED_PROPS_COMPONENT = """<script setup lang="ts">
const { msg, count = 1 } = defineProps<{ msg: string, count?: number }>()
</script>

<template>
  <p>{{ msg }} {{ count }}</p>
</template>
"""

SCOPED_STYLE_COMPONENT = """<script setup>
import { ref } from 'vue'
const color = ref('red')
</script>

<template>
  <div class="box">Hello</div>
</template>

<style scoped>
.box { color: v-bind(color); }
</style>
"""


@pytest.fixture
def temp_directory() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Automatically cleaned up after the test completes.
    """
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def compiler() -> SFCCompiler:
    """Create an SFCCompiler with the default (development) configuration."""
    return SFCCompiler()


@pytest.fixture
def production_compiler() -> SFCCompiler:
    """Create an SFCCompiler with the production configuration."""
    return SFCCompiler(CompilerConfig.for_production())


@pytest.fixture
def diagnostics() -> DiagnosticsCollector:
    """A fresh diagnostics collector for driving a single stage."""
    return DiagnosticsCollector()


@pytest.fixture
def counter_component() -> str:
    return COUNTER_COMPONENT


@pytest.fixture
def options_component() -> str:
    return OPTIONS_COMPONENT


@pytest.fixture
def typed_props_component() -> str:
    return TYPED_PROPS_COMPONENT


@pytest.fixture
def scoped_style_component() -> str:
    return SCOPED_STYLE_COMPONENT


@pytest.fixture
def component_file(temp_directory: Path) -> Callable[[str, str], Path]:
    """Factory writing a component source into the temporary directory."""

    def write(source: str, name: str = "Component.vue") -> Path:
        path = temp_directory / name
        path.write_text(source, encoding="utf-8")
        return path

    return write


def make_template_block(content: str) -> TemplateBlock:
    """A template block whose content starts at index 0 of the source."""
    data = content.encode("utf-8")
    return TemplateBlock(content, SourceSpan(0, len(data)), SourceSpan(0, len(data)), 0, {})


@pytest.fixture
def template_block() -> Callable[[str], TemplateBlock]:
    return make_template_block


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config: Any, items: List[Any]) -> None:
    """Modify test collection to add markers based on test location."""
    for item in items:
        # Add integration marker to tests in integration directory
        if "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)

        # Add unit marker to tests in core directory
        if "core" in str(item.path):
            item.add_marker(pytest.mark.unit)
