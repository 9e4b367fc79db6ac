"""
Chart payload engine: geometry detection, orchestration, panel discovery,
legacy call translation and document assembly.

Import from the submodules (``engine.orchestrator``, ``engine.api`` ...);
this package module stays empty because the layer processors import
``engine.errors`` and ``engine.logging``.
"""
