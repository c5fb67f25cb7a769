"""
Visual logging utilities for debugging marker detection.
"""

import cv2
import numpy as np
import logging
import json
import re
from typing import Dict, Optional
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class VisualLogger:
    """Manages visual log creation and saving for debugging detection runs."""

    def __init__(self, output_dir: Optional[str] = None):
        """
        Initialize visual logger.

        Args:
            output_dir: Base directory for saving logs. If None, uses tests/fixtures/detection_logs/
        """
        self.output_dir = output_dir or 'tests/fixtures/detection_logs'
        self.steps = []
        self.run_name = None
        self.image_name = None

    def start_log(self, run_name: str, image_name: str):
        """Start a new visual log for a run."""
        self.run_name = run_name
        self.image_name = image_name
        self.steps = []

    def add_step(
        self,
        step_name: str,
        description: str,
        image: np.ndarray,
        data: Optional[Dict] = None
    ):
        """
        Add a visualization step to the log.

        Args:
            step_name: Name of the step (used in filename)
            description: Human-readable description
            image: Image for this step (copied, scratch buffers get overwritten)
            data: Additional debug data (marker centers, counts, etc.)
        """
        self.steps.append({
            'step_name': step_name,
            'description': description,
            'image': image.copy(),
            'data': data or {}
        })

    def get_log_dir(self) -> Optional[Path]:
        """Directory this log is written to, or None before start_log."""
        if not self.run_name or not self.image_name:
            return None
        # Timestamped run names are used as-is, file names lose their extension
        if re.search(r'_\d{8}_\d{6}', self.image_name):
            image_base = self.image_name
        else:
            image_base = Path(self.image_name).stem
        return Path(self.output_dir) / image_base / self.run_name

    def save_log(self, final_visualization: np.ndarray) -> str:
        """
        Save visual log to disk.

        Args:
            final_visualization: Final annotated result image

        Returns:
            Path to saved log directory
        """
        log_dir = self.get_log_dir()
        if log_dir is None:
            logger.warning('Cannot save log: run_name or image_name not set')
            return ''
        log_dir.mkdir(parents=True, exist_ok=True)

        for idx, step in enumerate(self.steps):
            step_path = log_dir / f'step_{idx:02d}_{step["step_name"]}.jpg'
            cv2.imwrite(str(step_path), step['image'])

        final_path = log_dir / 'final_result.jpg'
        cv2.imwrite(str(final_path), final_visualization)

        metadata = {
            'run_name': self.run_name,
            'image_name': self.image_name,
            'timestamp': datetime.now().isoformat(),
            'steps': [
                {
                    'step_name': step['step_name'],
                    'description': step['description'],
                    'image_file': f'step_{idx:02d}_{step["step_name"]}.jpg',
                    'data': step['data']
                }
                for idx, step in enumerate(self.steps)
            ],
            'final_image': 'final_result.jpg'
        }

        with open(log_dir / 'log.json', 'w') as f:
            json.dump(metadata, f, indent=2)

        logger.info(f'Visual log saved to: {log_dir}')
        return str(log_dir)
