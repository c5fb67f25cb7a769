#!/usr/bin/env python3
"""
Run the frame analyzer on still images.

Thin wrapper around FrameAnalyzer for command-line checks of marker
detection. Optionally saves a visual log (grayscale, threshold, annotated)
per image.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from datetime import datetime

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from services.pipeline import FrameAnalyzer
from services.utils.debug import DebugContext
from utils.image_loader import load_image

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description='Detect strip corner markers in images')
    parser.add_argument('image_paths', nargs='+', help='Paths or URLs of images to analyze')
    parser.add_argument('--save-results', action='store_true', help='Save visual logs to the output directory')
    parser.add_argument('--output-dir', type=str, default='experiments', help='Output directory for visual logs')
    parser.add_argument('--json', action='store_true', help='Print results as JSON')

    args = parser.parse_args()

    results = {}
    with FrameAnalyzer(config={'color_order': 'bgr'}) as analyzer:
        for image_path in args.image_paths:
            try:
                image = load_image(image_path)
            except ValueError as e:
                print(f"✗ {image_path}: {e}")
                continue

            debug = None
            if args.save_results:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                debug = DebugContext(
                    enabled=True,
                    output_dir=args.output_dir,
                    image_name=f"{Path(image_path).stem}_{timestamp}"
                )

            result = analyzer.analyze(image, debug=debug)
            results[image_path] = result.to_dict()

            if debug:
                log_path = debug.save_log(result.annotated_frame)
                results[image_path]['visual_log_path'] = log_path

            if not args.json:
                mark = '✓' if result.is_aligned else '·'
                print(f"{mark} {image_path}: {result.status_message} "
                      f"({len(result.markers)} markers, state={result.state.value})")
                for marker in result.markers:
                    print(f"    {marker.shape.value:<6} at ({marker.center.x:.1f}, {marker.center.y:.1f}) "
                          f"area={marker.area:.0f}")
                if result.aspect_ratio is not None:
                    print(f"    aspect ratio: {result.aspect_ratio:.2f}")

    if args.json:
        print(json.dumps(results, indent=2))


if __name__ == '__main__':
    main()
