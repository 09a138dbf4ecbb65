"""
Core Package.

Contains the instrumentation pipeline:
- Syntax layer (parsing into ESTree, node builders)
- Source Position Model
- Rule registry and the single-walk traversal
- Code generation
- The Instrumentation Engine
"""
