#!/usr/bin/env python3
"""
Rule Evaluators for Compositional Analysis

This module contains evaluators scoring a subject position against the
rule of thirds and against center composition.

Both rules share one proximity formula: a target point scores 100 when the
subject sits on it and falls linearly to 0 at a distance of half the frame
diagonal.
"""

from typing import Dict, List, Any
import logging
from abc import ABC, abstractmethod

from utils.geometry import Point, Size, euclidean_distance, half_diagonal, point_to_dict
from utils.validation import validate_size

logger = logging.getLogger(__name__)


def rule_of_thirds_points(image_size: Size) -> List[Point]:
    """The four rule of thirds intersections, top row first, left to right."""

    width, height = image_size
    return [
        (width / 3, height / 3),
        (width * 2 / 3, height / 3),
        (width / 3, height * 2 / 3),
        (width * 2 / 3, height * 2 / 3)
    ]


def center_point(image_size: Size) -> Point:
    return (image_size[0] / 2, image_size[1] / 2)


def proximity_score(distance: float, image_size: Size) -> float:
    """Map a pixel distance to a [0, 100] score relative to the half diagonal."""

    return max(0.0, 100.0 - (distance / half_diagonal(image_size)) * 100.0)


def evaluate_rule_of_thirds(centroid: Point, image_size: Size) -> float:
    """
    Score a subject position against the rule of thirds.

    Args:
        centroid: Subject center of mass
        image_size: (width, height) of the frame the centroid lives in

    Returns:
        Score in [0, 100]; the closest intersection wins
    """

    image_size = validate_size(image_size, "image_size")

    best_score = 0.0
    for point in rule_of_thirds_points(image_size):
        best_score = max(best_score, proximity_score(euclidean_distance(centroid, point), image_size))

    return best_score


def evaluate_center_composition(centroid: Point, image_size: Size) -> float:
    """
    Score a subject position against center composition.

    Returns:
        Score in [0, 100]
    """

    image_size = validate_size(image_size, "image_size")
    return proximity_score(euclidean_distance(centroid, center_point(image_size)), image_size)


class BaseRuleEvaluator(ABC):
    """
    Abstract base class for all rule evaluators.

    Provides common interface for scoring a subject position against a
    compositional rule.
    """

    name = "rule"

    @abstractmethod
    def target_points(self, image_size: Size) -> List[Point]:
        """Points where the rule wants the subject."""

        pass

    def evaluate(self, centroid: Point, image_size: Size) -> Dict[str, Any]:
        """
        Evaluate the rule for a subject position.

        Args:
            centroid: Subject center of mass
            image_size: (width, height) of the frame

        Returns:
            Dictionary with the score, the closest target point and its distance
        """

        image_size = validate_size(image_size, "image_size")
        points = self.target_points(image_size)

        # First point wins ties
        distances = [euclidean_distance(centroid, point) for point in points]
        closest = min(range(len(points)), key=lambda i: distances[i])

        return {
            'rule': self.name,
            'score': proximity_score(distances[closest], image_size),
            'target': point_to_dict(points[closest]),
            'distance': distances[closest],
            'points': [point_to_dict(point) for point in points]
        }


class RuleOfThirdsEvaluator(BaseRuleEvaluator):
    """
    Evaluates adherence to the Rule of Thirds compositional principle.

    The subject should sit on one of the four grid intersections.
    """

    name = "rule_of_thirds"

    def target_points(self, image_size: Size) -> List[Point]:
        return rule_of_thirds_points(image_size)


class CenterCompositionEvaluator(BaseRuleEvaluator):
    """Evaluates how close the subject sits to the frame center."""

    name = "center"

    def target_points(self, image_size: Size) -> List[Point]:
        return [center_point(image_size)]
