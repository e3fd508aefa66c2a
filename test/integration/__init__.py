"""
Integration tests for the SFC Compiler.

These tests drive complete components through the public entry points.

Test categories:
- Compilation integration: script setup, options API, styles and entry points
- Error handling: diagnostics, byte spans, style transformer failures
- CLI: the `sfc-compile` and `sfc-config` commands
"""
