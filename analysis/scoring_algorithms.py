#!/usr/bin/env python3
"""
Composition Scoring Algorithms

This module scores the main subject's position against the rule of thirds
and center composition, picks the better-fitting rule, and derives a short
list of threshold-based recommendations.
"""

from typing import Dict, List, Optional, Any
import logging
from dataclasses import dataclass, field

from utils.geometry import Point, Region, Size
from utils.validation import validate_size
from .region_extractor import select_main_subject
from .rule_evaluators import CenterCompositionEvaluator, RuleOfThirdsEvaluator
from .suggestion_engine import AdviceTarget, determine_best_target

logger = logging.getLogger(__name__)

RULE_LABELS = {
    AdviceTarget.RULE_OF_THIRDS: "Rule of Thirds",
    AdviceTarget.CENTER: "Center Composition"
}

RECOMMENDATIONS = {
    'move_right': "Try placing the subject a little further to the right",
    'move_left': "Try placing the subject a little further to the left",
    'move_down': "Try placing the subject a little lower in the frame",
    'move_up': "Try placing the subject a little higher in the frame",
    'use_targets': "Consider placing the subject near a rule-of-thirds point or the center",
    'recompose': "Consider recomposing the shot substantially",
    'single_subject': "Narrowing the shot down to a single subject will improve the composition"
}


@dataclass
class CompositionScore:
    """
    Placement scores for the main subject.

    Both rule scores lie in [0, 100]; ``overall_score`` is their maximum.
    """
    rule_of_thirds_score: float
    center_score: float
    best_rule: str
    overall_score: float
    recommendations: List[str] = field(default_factory=list)
    rule_analysis: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def best_target(self) -> AdviceTarget:
        return determine_best_target(self.rule_of_thirds_score, self.center_score)

    def to_dict(self) -> Dict[str, Any]:
        """Convert score to dictionary format."""
        return {
            'rule_of_thirds_score': self.rule_of_thirds_score,
            'center_score': self.center_score,
            'best_rule': self.best_rule,
            'overall_score': self.overall_score,
            'recommendations': list(self.recommendations),
            'rule_analysis': self.rule_analysis
        }


class CompositionScorer:
    """
    Main composition scoring engine.

    Scores one subject position; the caller decides which region is the
    subject.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize composition scorer.

        Args:
            config: Configuration dictionary for scoring parameters
        """

        self.config = {**self._get_default_config(), **(config or {})}

        self.rule_evaluators = {
            'rule_of_thirds': RuleOfThirdsEvaluator(),
            'center': CenterCompositionEvaluator()
        }

        logger.info("CompositionScorer initialized")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default scoring configuration."""

        return {
            'max_recommendations': 3,
            # Multi-subject advice is appended after capping unless this is set
            'cap_includes_multi_subject': False,
            'subject_policy': 'discovery_order',
            'edge_margin': 0.3,
            'targets_threshold': 50.0,
            'recompose_threshold': 30.0
        }

    def score(self, centroid: Point, image_size: Size, region_count: int = 1) -> CompositionScore:
        """
        Score a subject position.

        Args:
            centroid: Subject center of mass in image pixels
            image_size: (width, height) of the image
            region_count: Number of regions retained by extraction

        Returns:
            CompositionScore with scores, best rule and recommendations
        """

        image_size = validate_size(image_size, "image_size")

        rule_analysis = {
            rule_name: evaluator.evaluate(centroid, image_size)
            for rule_name, evaluator in self.rule_evaluators.items()
        }

        rule_of_thirds_score = rule_analysis['rule_of_thirds']['score']
        center_score = rule_analysis['center']['score']

        best_rule = RULE_LABELS[determine_best_target(rule_of_thirds_score, center_score)]

        recommendations = self.generate_recommendations(
            centroid, image_size, rule_of_thirds_score, center_score, region_count
        )

        return CompositionScore(
            rule_of_thirds_score=rule_of_thirds_score,
            center_score=center_score,
            best_rule=best_rule,
            overall_score=max(rule_of_thirds_score, center_score),
            recommendations=recommendations,
            rule_analysis=rule_analysis
        )

    def score_regions(self, regions: List[Region], image_size: Size) -> Optional[CompositionScore]:
        """
        Score the main subject among ``regions``.

        Returns:
            CompositionScore, or None when no subject was detected
        """

        subject = select_main_subject(regions, self.config['subject_policy'])
        if subject is None:
            logger.debug("No subject detected, skipping scoring")
            return None

        return self.score(subject.centroid, image_size, region_count=len(regions))

    def generate_recommendations(self, centroid: Point, image_size: Size,
                                 rule_of_thirds_score: float, center_score: float,
                                 region_count: int = 1) -> List[str]:
        """
        Build threshold-based recommendations.

        Horizontal placement, vertical placement (Y grows downward, so a
        subject near the top is advised to move lower), weak scores on both
        rules, and a very weak best score each add one entry. The list is
        capped before the multi-subject entry is appended.
        """

        width, height = image_size
        margin = self.config['edge_margin']
        recommendations = []

        if centroid[0] < width * margin:
            recommendations.append(RECOMMENDATIONS['move_right'])
        elif centroid[0] > width * (1 - margin):
            recommendations.append(RECOMMENDATIONS['move_left'])

        if centroid[1] < height * margin:
            recommendations.append(RECOMMENDATIONS['move_down'])
        elif centroid[1] > height * (1 - margin):
            recommendations.append(RECOMMENDATIONS['move_up'])

        targets_threshold = self.config['targets_threshold']
        if rule_of_thirds_score < targets_threshold and center_score < targets_threshold:
            recommendations.append(RECOMMENDATIONS['use_targets'])

        if max(rule_of_thirds_score, center_score) < self.config['recompose_threshold']:
            recommendations.append(RECOMMENDATIONS['recompose'])

        max_recommendations = self.config['max_recommendations']

        if region_count > 1:
            if self.config['cap_includes_multi_subject']:
                recommendations = recommendations[:max_recommendations - 1]
            else:
                recommendations = recommendations[:max_recommendations]
            recommendations.append(RECOMMENDATIONS['single_subject'])
        else:
            recommendations = recommendations[:max_recommendations]

        return recommendations
