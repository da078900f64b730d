"""Analysis module for reachable-value computation.
This module provides:
- Predicate normalization of parameter reads
- Parameter profiling and strategy selection
- Literal-set abstract domain and control flow graphs
- Reachable-value analysis with a soundness audit
- Z3 path feasibility of the values it finds
"""

from pyreach.analysis.abstract_domains import AbstractState, AbstractValue, LiteralSet
from pyreach.analysis.abstract_interpreter import AnalysisVerdict, ReachableValueAnalyzer
from pyreach.analysis.feasibility import FeasibilityReport, Inconclusive, PathFeasibilityChecker
from pyreach.analysis.flow_sensitive import CFGBuilder, ControlFlowGraph, EdgeKind
from pyreach.analysis.normalizer import PredicateNormalizer
from pyreach.analysis.profile import ParameterProfile, extract_profile
from pyreach.analysis.soundness import PrecisionLoss, SoundnessAuditor
from pyreach.analysis.strategy import Strategy, StrategyDecision, StrategySelector

__all__ = [
    "AbstractState",
    "AbstractValue",
    "LiteralSet",
    "AnalysisVerdict",
    "ReachableValueAnalyzer",
    "FeasibilityReport",
    "Inconclusive",
    "PathFeasibilityChecker",
    "CFGBuilder",
    "ControlFlowGraph",
    "EdgeKind",
    "PredicateNormalizer",
    "ParameterProfile",
    "extract_profile",
    "PrecisionLoss",
    "SoundnessAuditor",
    "Strategy",
    "StrategyDecision",
    "StrategySelector",
]
