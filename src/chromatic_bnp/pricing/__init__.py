"""Pricing oracle implementations for the column generation pricing subproblem."""

from .base import PricingOracle, PricingResult
from .classical import ClassicalPricingOracle
from .greedy import GreedyPricingOracle
