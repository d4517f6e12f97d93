"""Branch-and-Price computation of the chromatic number of a graph."""

from .branch_and_price import (
    BranchAndPrice,
    BranchAndPriceConfig,
    BranchAndPriceReport,
    BnPNode,
    NodeStatus,
    chromatic_number,
)
from .coloring import to_partition, validate_coloring, verify_coloring, ValidationResult
from .logging_config import setup_logging
from .column_generation import CGState, ColumnGeneration, ColumnGenerationResult
from .exceptions import (
    BranchAndPriceError,
    GlobalTimeoutError,
    InfeasibleNodeError,
    MalformedBranchError,
    PricingTimeoutError,
)
from .master_problem import MasterProblem, solve_rmp, solve_restricted_ilp
from .model import BranchDirection, BranchingDecision, IndependentSet
from .overlay import GraphOverlay
from .pricing.base import PricingOracle, PricingResult
from .pricing.classical import ClassicalPricingOracle
from .pricing.greedy import GreedyPricingOracle
