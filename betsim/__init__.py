"""Sports-betting simulation: odds generation and bet settlement."""

__version__ = "0.1.0"
