"""
Saliency model adapters for the Composition Advisor.
"""

from .saliency_oracle import (
    SaliencyOracle,
    GradientSaliencyOracle,
    TorchSaliencyOracle,
    CallableSaliencyOracle,
    create_saliency_oracle
)

__all__ = [
    'SaliencyOracle',
    'GradientSaliencyOracle',
    'TorchSaliencyOracle',
    'CallableSaliencyOracle',
    'create_saliency_oracle'
]
