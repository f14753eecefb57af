from .cartpole import Cartpole
from .particle import Particle

__all__ = ["Cartpole", "Particle"]
