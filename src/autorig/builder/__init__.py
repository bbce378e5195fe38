"""Builder 模块：预算分配、候选池、兼容性检查与配置搜索"""

from .budget import BudgetAllocator, PURPOSE_WEIGHTS, boosted_weights, preferred_parts_cost
from .compatibility import CompatibilityChecker, estimate_draw, required_psu_wattage
from .diversify import Diversifier, LiveUpdateChannel
from .picker import ConfigurationBuilder
from .pool import CandidatePoolProvider
from .retry import BudgetRetryController

__all__ = [
    "BudgetAllocator",
    "PURPOSE_WEIGHTS",
    "boosted_weights",
    "preferred_parts_cost",
    "CompatibilityChecker",
    "estimate_draw",
    "required_psu_wattage",
    "Diversifier",
    "LiveUpdateChannel",
    "ConfigurationBuilder",
    "CandidatePoolProvider",
    "BudgetRetryController",
]
