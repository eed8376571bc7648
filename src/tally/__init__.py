"""
Tally - per-site additive counter aggregation.

Each site owns one accumulator record mapping counter keys to running
totals; submissions merge strictly positive deltas into it.

- tally.core: models, validation, identity keys, repositories
- tally.ops: the merge engine (transport-agnostic operations)
- tally.api: FastAPI application
- tally.cli: typer command-line interface
"""

__version__ = "0.1.0"
