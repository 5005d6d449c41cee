"""
NJ Cash 5 Search and Probability Models

Available models:
- distance: Hamming distance to history, random-sampling baseline and random search
- annealing: Simulated annealing search for the combination farthest from history
- monte_carlo: Closed-form probability of a future draw repeating history
"""

from . import distance
from . import annealing
from . import monte_carlo

__all__ = [
    "distance",
    "annealing",
    "monte_carlo",
]
