"""
Compositional Analysis Module

This module contains the composition analysis engine: salient region
extraction, rule of thirds / center scoring, directional advice, and the
single-shot and streaming orchestrators.
"""

from .composition_analyzer import (
    CompositionAnalyzer,
    CompositionResults,
    AnalysisOutcome,
    AnalysisError
)
from .stream_analyzer import StreamAnalyzer, StreamUpdate
from .region_extractor import (
    RegionExtractor,
    extract_regions,
    default_size_thresholds,
    select_main_subject
)
from .rule_evaluators import (
    RuleOfThirdsEvaluator,
    CenterCompositionEvaluator,
    evaluate_rule_of_thirds,
    evaluate_center_composition,
    rule_of_thirds_points
)
from .scoring_algorithms import CompositionScorer, CompositionScore
from .suggestion_engine import (
    AdviceGenerator,
    AdviceTarget,
    AdviceType,
    ArrowDirection,
    VisualAdvice,
    determine_best_target,
    direction_from_angle,
    calculate_direction
)

__all__ = [
    'CompositionAnalyzer',
    'CompositionResults',
    'AnalysisOutcome',
    'AnalysisError',
    'StreamAnalyzer',
    'StreamUpdate',
    'RegionExtractor',
    'extract_regions',
    'default_size_thresholds',
    'select_main_subject',
    'RuleOfThirdsEvaluator',
    'CenterCompositionEvaluator',
    'evaluate_rule_of_thirds',
    'evaluate_center_composition',
    'rule_of_thirds_points',
    'CompositionScorer',
    'CompositionScore',
    'AdviceGenerator',
    'AdviceTarget',
    'AdviceType',
    'ArrowDirection',
    'VisualAdvice',
    'determine_best_target',
    'direction_from_angle',
    'calculate_direction'
]

__version__ = "1.0.0"
