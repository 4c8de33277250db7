"""Property Escrow — multi-currency money math and escrow lifecycle for real-estate purchases."""

__version__ = "0.1.0"
