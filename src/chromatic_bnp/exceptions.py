"""Error kinds raised while exploring the Branch-and-Price tree."""

from typing import Optional


class BranchAndPriceError(Exception):
    """Base class for node- and run-level search errors."""


class InfeasibleNodeError(BranchAndPriceError):
    """The master LP of a node has no feasible solution."""


class PricingTimeoutError(BranchAndPriceError):
    """The exact pricing solver ran out of time before proving optimality.

    ``bound`` is the solver's upper bound on the maximum independent-set
    weight, or None if it did not report one.
    """

    def __init__(self, message: str, bound: Optional[float] = None):
        super().__init__(message)
        self.bound = bound


class MalformedBranchError(BranchAndPriceError):
    """A branching decision contradicts the decisions already on the path."""


class GlobalTimeoutError(BranchAndPriceError):
    """The run deadline elapsed."""
