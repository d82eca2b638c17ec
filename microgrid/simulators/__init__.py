"""Simulators for the community and the central solar plant."""

from .community import CommunityGenerator, CommunitySimulator
from .solar_plant import SolarPlantSimulator

__all__ = [
    "CommunityGenerator",
    "CommunitySimulator",
    "SolarPlantSimulator",
]
