"""Wasmforge CLI — Typer-based command-line interface.

Provides the ``wasmforge`` command with subcommands for building one
runtime, verifying an artifact, recording metadata, aggregating the global
registry, and running the whole pipeline.

All output uses Rich for formatted terminal display.
"""
