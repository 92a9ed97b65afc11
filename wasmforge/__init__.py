"""Wasmforge: build, verify and publish WebAssembly runtimes.

Pipeline per language:
  - Build with the language toolchain (TinyGo, Cargo) into ``build/<lang>/``
  - Optional ``wasm-opt`` size pass
  - Verify magic number, digest, structure (``wasmtime``) and optional smoke run
  - Record the version in ``runtimes/<lang>/manifest.json``
  - Recompute the global ``manifest.json`` registry from every runtime manifest
"""

__version__ = "0.2.0"
__author__ = "Wasmforge contributors"
__description__ = "Build, verify and publish versioned WebAssembly runtimes"

from wasmforge.core.orchestrator import Orchestrator
from wasmforge.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
