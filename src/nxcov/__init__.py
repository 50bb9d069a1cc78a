"""nxcov: Nx + Jest coverage aggregation and pull request reporting."""

__version__ = "0.1.0"
