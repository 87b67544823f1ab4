"""Backend da loja de miniaturas Ferrari."""

__version__ = "0.1.0"
