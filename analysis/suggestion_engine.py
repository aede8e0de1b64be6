#!/usr/bin/env python3
"""
Suggestion Engine for Composition Improvement

This module turns a subject position into directional advice: where the
subject should go (a rule of thirds intersection or the frame center),
which of eight compass directions leads there, and how urgent the move is.

Directions use image pixel coordinates, so "down" means towards larger Y
(the bottom edge of the photo).
"""

import math
from typing import Dict, List, Optional, Any
import logging
from dataclasses import dataclass
from enum import Enum

from utils.geometry import Point, Region, Size, euclidean_distance, point_to_dict
from utils.validation import validate_size
from .region_extractor import select_main_subject
from .rule_evaluators import (
    center_point,
    evaluate_center_composition,
    evaluate_rule_of_thirds,
    rule_of_thirds_points
)

logger = logging.getLogger(__name__)


class AdviceTarget(Enum):
    """Composition the advice steers towards."""
    RULE_OF_THIRDS = "rule_of_thirds"
    CENTER = "center"
    BEST = "best"

    @classmethod
    def from_value(cls, value: Any) -> "AdviceTarget":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown advice target: {value!r}")


class ArrowDirection(Enum):
    """Eight compass buckets in image coordinates."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    UP_LEFT = "up_left"
    UP_RIGHT = "up_right"
    DOWN_LEFT = "down_left"
    DOWN_RIGHT = "down_right"


class AdviceType(Enum):
    """Kinds of visual advice."""
    MOVE_TO_RULE_OF_THIRDS = "move_to_rule_of_thirds"
    MOVE_TO_CENTER = "move_to_center"
    REDUCE_SUBJECTS = "reduce_subjects"


TARGET_NAMES = {
    AdviceTarget.RULE_OF_THIRDS: "rule-of-thirds point",
    AdviceTarget.CENTER: "center"
}

ADVICE_TYPES = {
    AdviceTarget.RULE_OF_THIRDS: AdviceType.MOVE_TO_RULE_OF_THIRDS,
    AdviceTarget.CENTER: AdviceType.MOVE_TO_CENTER
}

DIRECTION_PHRASES = {
    ArrowDirection.UP: "up",
    ArrowDirection.DOWN: "down",
    ArrowDirection.LEFT: "left",
    ArrowDirection.RIGHT: "right",
    ArrowDirection.UP_LEFT: "up and to the left",
    ArrowDirection.UP_RIGHT: "up and to the right",
    ArrowDirection.DOWN_LEFT: "down and to the left",
    ArrowDirection.DOWN_RIGHT: "down and to the right"
}

REDUCE_SUBJECTS_MESSAGE = "Narrow the shot down to a single subject"


@dataclass
class VisualAdvice:
    """
    One piece of directional composition advice.

    The principal advice carries a target position, a direction and an
    intensity in [0, 1]. The multi-subject advisory has no target and no
    direction.
    """
    type: AdviceType
    message: str
    target_position: Optional[Point]
    current_position: Point
    direction: Optional[ArrowDirection]
    intensity: float
    target: Optional[AdviceTarget] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert advice to dictionary format."""
        return {
            'type': self.type.value,
            'message': self.message,
            'target_position': point_to_dict(self.target_position) if self.target_position is not None else None,
            'current_position': point_to_dict(self.current_position),
            'direction': self.direction.value if self.direction is not None else None,
            'intensity': self.intensity,
            'target': self.target.value if self.target is not None else None
        }


def determine_best_target(rule_of_thirds_score: float, center_score: float) -> AdviceTarget:
    """Rule of thirds unless center composition scores strictly higher."""

    if center_score > rule_of_thirds_score:
        return AdviceTarget.CENTER

    return AdviceTarget.RULE_OF_THIRDS


def direction_from_angle(degrees: float) -> ArrowDirection:
    """
    Bucket an angle (degrees, atan2 convention, Y down) into a compass direction.

    Each bucket is closed on its lower boundary and open on its upper one;
    LEFT covers [157.5, 180] and [-180, -157.5).
    """

    if -22.5 <= degrees < 22.5:
        return ArrowDirection.RIGHT
    elif 22.5 <= degrees < 67.5:
        return ArrowDirection.DOWN_RIGHT
    elif 67.5 <= degrees < 112.5:
        return ArrowDirection.DOWN
    elif 112.5 <= degrees < 157.5:
        return ArrowDirection.DOWN_LEFT
    elif degrees >= 157.5 or degrees < -157.5:
        return ArrowDirection.LEFT
    elif -157.5 <= degrees < -112.5:
        return ArrowDirection.UP_LEFT
    elif -112.5 <= degrees < -67.5:
        return ArrowDirection.UP
    else:
        return ArrowDirection.UP_RIGHT


def calculate_direction(from_point: Point, to_point: Point) -> ArrowDirection:
    """Compass direction of the move from ``from_point`` to ``to_point``."""

    dx = to_point[0] - from_point[0]
    dy = to_point[1] - from_point[1]

    return direction_from_angle(math.degrees(math.atan2(dy, dx)))


def get_target_position(target: AdviceTarget, image_size: Size, current_position: Point) -> Point:
    """
    Resolve a concrete (non-BEST) target to a point.

    Rule of thirds resolves to the intersection nearest the current position
    (the first one on ties).
    """

    if target == AdviceTarget.RULE_OF_THIRDS:
        return min(rule_of_thirds_points(image_size),
                   key=lambda point: euclidean_distance(current_position, point))

    if target == AdviceTarget.CENTER:
        return center_point(image_size)

    raise ValueError("BEST must be resolved before computing a target position")


def generate_directional_message(direction: ArrowDirection, target: AdviceTarget) -> str:
    return f"Move {DIRECTION_PHRASES[direction]} toward the {TARGET_NAMES[target]}"


class AdviceGenerator:
    """
    Main advice generation engine.

    Computes move-to-target advice for the main subject and, when several
    subjects compete, a consolidation advisory.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize advice generator.

        Args:
            config: Configuration dictionary for advice parameters
        """
        self.config = {**self._get_default_config(), **(config or {})}

        logger.info("AdviceGenerator initialized")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration for advice generation."""
        return {
            'advice_target': AdviceTarget.BEST.value,
            'intensity_reference_distance': 100.0,
            'multi_subject_intensity': 0.8,
            'subject_policy': 'discovery_order'
        }

    def resolve_target(self, target: AdviceTarget, current_position: Point,
                       image_size: Size) -> AdviceTarget:
        """Resolve BEST to whichever concrete rule scores higher at ``current_position``."""

        if target != AdviceTarget.BEST:
            return target

        return determine_best_target(
            evaluate_rule_of_thirds(current_position, image_size),
            evaluate_center_composition(current_position, image_size)
        )

    def advise(self, current_position: Point, target: Any, image_size: Size) -> VisualAdvice:
        """
        Generate the principal advice for a subject position.

        Args:
            current_position: Subject centroid in image pixels
            target: AdviceTarget (or its string value)
            image_size: (width, height) of the image

        Returns:
            VisualAdvice with target position, direction and intensity
        """

        image_size = validate_size(image_size, "image_size")
        target = self.resolve_target(AdviceTarget.from_value(target), current_position, image_size)

        target_position = get_target_position(target, image_size, current_position)
        direction = calculate_direction(current_position, target_position)
        distance = euclidean_distance(current_position, target_position)
        intensity = min(1.0, distance / self.config['intensity_reference_distance'])

        return VisualAdvice(
            type=ADVICE_TYPES[target],
            message=generate_directional_message(direction, target),
            target_position=target_position,
            current_position=current_position,
            direction=direction,
            intensity=intensity,
            target=target
        )

    def generate_advice(self, regions: List[Region], image_size: Size,
                        target: Optional[Any] = None) -> List[VisualAdvice]:
        """
        Generate the advice list for an analysis.

        Args:
            regions: Extracted regions in image pixels
            image_size: (width, height) of the image
            target: Advice target (defaults to the configured one)

        Returns:
            Empty list when there is no subject; otherwise the principal
            advice, followed by a consolidation advisory if several regions
            were found
        """

        subject = select_main_subject(regions, self.config['subject_policy'])
        if subject is None:
            logger.debug("No subject detected, skipping advice")
            return []

        target = self.config['advice_target'] if target is None else target
        advices = [self.advise(subject.centroid, target, image_size)]

        if len(regions) > 1:
            advices.append(VisualAdvice(
                type=AdviceType.REDUCE_SUBJECTS,
                message=REDUCE_SUBJECTS_MESSAGE,
                target_position=None,
                current_position=subject.centroid,
                direction=None,
                intensity=self.config['multi_subject_intensity']
            ))

        logger.debug(f"Generated {len(advices)} advice items for {len(regions)} regions")
        return advices
