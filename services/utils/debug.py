"""
Debug utilities for the StripScan CV Service.

Provides a unified debugging interface with visual logging and step tracking.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

import numpy as np

from utils.visual_logger import VisualLogger

logger = logging.getLogger(__name__)


@dataclass
class DebugStep:
    """Represents a single debug step in the pipeline."""
    step_id: str
    name: str
    description: str
    data: Dict[str, Any] = field(default_factory=dict)


class DebugContext:
    """
    Manages debug state and visual logging throughout the pipeline.

    Usage:
        debug = DebugContext(enabled=True, output_dir="logs", image_name="frame.png")
        analyzer.analyze(frame, debug=debug)
        debug.save_log()
    """

    def __init__(
        self,
        enabled: bool = False,
        output_dir: Optional[str] = None,
        image_name: str = "unknown",
        run_tag: str = "markers",
        step_filter: Optional[List[str]] = None
    ):
        """
        Initialize debug context.

        Args:
            enabled: Whether debug mode is enabled
            output_dir: Directory for saving visual logs
            image_name: Name of the image being processed
            run_tag: Subdirectory name grouping this run's files
            step_filter: Optional list of step IDs to log (None = log all)
        """
        self.enabled = enabled
        self.image_name = image_name
        self.run_tag = run_tag
        self.step_filter = step_filter
        self.steps: List[DebugStep] = []
        self.visual_logger: Optional[VisualLogger] = None

        if enabled:
            self.visual_logger = VisualLogger(output_dir)
            self.visual_logger.start_log(run_tag, image_name)

    def add_step(
        self,
        step_id: str,
        name: str,
        image: Optional[np.ndarray] = None,
        data: Optional[Dict[str, Any]] = None,
        description: str = ""
    ) -> None:
        """
        Add a debug step.

        Args:
            step_id: Unique identifier for the step (e.g., "02_binary")
            name: Human-readable step name
            image: Optional image to log (numpy array)
            data: Optional metadata dictionary
            description: Optional description of the step
        """
        if not self.enabled:
            return

        if self.step_filter and step_id not in self.step_filter:
            return

        clean_data = {key: self._clean_value(value) for key, value in (data or {}).items()}
        self.steps.append(DebugStep(
            step_id=step_id,
            name=name,
            description=description,
            data=clean_data
        ))

        if self.visual_logger and image is not None:
            try:
                self.visual_logger.add_step(step_id, description or name, image, clean_data)
            except Exception as e:
                logger.warning(f"Failed to add visual step {step_id}: {e}")

    def _clean_value(self, value):
        """Recursively clean a value for JSON serialization."""
        if hasattr(value, 'to_dict') and callable(getattr(value, 'to_dict')):
            return self._clean_value(value.to_dict())
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, np.ndarray):
            return value.tolist() if value.size < 100 else f"<ndarray shape={value.shape}>"
        if isinstance(value, np.bool_):
            return bool(value)
        if isinstance(value, np.integer):
            return int(value)
        if isinstance(value, np.floating):
            return float(value)
        if isinstance(value, (list, tuple)):
            return [self._clean_value(v) for v in value]
        if isinstance(value, dict):
            return {k: self._clean_value(v) for k, v in value.items()}
        return value

    def save_log(self, final_image: Optional[np.ndarray] = None) -> Optional[str]:
        """
        Save the debug log.

        Args:
            final_image: Optional final image to save. If None, uses the last step's image.

        Returns:
            Path to saved log, or None if disabled or nothing to save
        """
        if not self.enabled or not self.visual_logger:
            return None

        if final_image is None:
            if not self.visual_logger.steps:
                logger.warning("No steps available to use as final image")
                return None
            final_image = self.visual_logger.steps[-1]['image']

        try:
            return self.visual_logger.save_log(final_image) or None
        except OSError as e:
            logger.warning(f"Failed to save debug log: {e}", exc_info=True)
            return None

    def get_summary(self) -> Dict[str, Any]:
        """
        Get debug summary as dictionary.

        Returns:
            Dictionary with debug information
        """
        log_dir = self.visual_logger.get_log_dir() if self.visual_logger else None
        return {
            "enabled": self.enabled,
            "image_name": self.image_name,
            "run_tag": self.run_tag,
            "steps": [
                {
                    "step_id": step.step_id,
                    "name": step.name,
                    "description": step.description,
                    "data": step.data
                }
                for step in self.steps
            ],
            "step_count": len(self.steps),
            "log_dir": str(log_dir) if log_dir else None
        }

    def is_enabled(self) -> bool:
        """Check if debug mode is enabled."""
        return self.enabled
