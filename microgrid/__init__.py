"""
Micro-grid Community Simulator

This package provides a simulated residential micro-grid:
- Households with rooftop solar, batteries and appliances
- An electric vehicle fleet
- A central solar plant with battery storage
- A power pool that buys surplus energy and sells it to households

All state is mock data persisted to a local JSON file.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
