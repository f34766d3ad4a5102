"""
ColorVision Dashboard

Backend for uploading retinal fundus images and ERG recordings and viewing
multimodal color-vision analyses.
"""

import importlib.metadata

__version__ = importlib.metadata.version("colorvision-dashboard")

from .lifecycle import FusionScorer, Job, JobLifecycleEngine

__all__ = [
    "FusionScorer",
    "Job",
    "JobLifecycleEngine",
]
