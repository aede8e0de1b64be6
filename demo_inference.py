#!/usr/bin/env python3
"""
Composition Advisor Demo Script

This script runs the composition advisor on photos from disk:
1. Loading a TorchScript saliency model, or using the gradient fallback
2. Extracting salient regions and scoring the main subject
3. Printing the advice and saving JSON results and overlay visualizations

Usage:
    python demo_inference.py --image path/to/image.jpg
    python demo_inference.py --image path/to/image.jpg --model path/to/saliency.pt
    python demo_inference.py --image path/to/images/ --batch --output results/
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import torch
import cv2
import matplotlib.pyplot as plt
import matplotlib.patches as patches

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from analysis import CompositionAnalyzer, CompositionResults, rule_of_thirds_points
from models import create_saliency_oracle
from preprocessing import ImagePreprocessor
from utils.validation_api import SUPPORTED_IMAGE_FORMATS, ADVICE_TARGETS, SUBJECT_POLICIES

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def find_images(input_path: Path, batch: bool) -> List[Path]:
    """Resolve the input argument to a list of image files."""

    if input_path.is_file():
        return [input_path]

    if input_path.is_dir() and batch:
        image_files = sorted(f for f in input_path.glob('*')
                             if f.suffix.lower() in SUPPORTED_IMAGE_FORMATS)
        logger.info(f"Found {len(image_files)} images in {input_path}")
        return image_files

    return []


def visualize_results(image_path: Path, results: CompositionResults, preprocessor: ImagePreprocessor,
                      save_path: Optional[Path] = None, show: bool = False) -> None:
    """
    Draw the thirds grid, retained regions and the principal advice over the photo.

    Args:
        image_path: Path of the analyzed image
        results: Analysis results in image pixel coordinates
        preprocessor: Preprocessor used to load the photo upright
        save_path: Optional path to save the visualization
        show: Whether to display the plot
    """
    image = cv2.cvtColor(preprocessor.load_image(str(image_path)), cv2.COLOR_BGR2RGB)
    width, height = results.image_size

    fig, ax = plt.subplots(figsize=(12, 12 * height / width))
    ax.imshow(image)
    ax.set_title(f"Composition Analysis: {image_path.name}", fontsize=14, fontweight='bold')
    ax.axis('off')

    for i in range(1, 3):
        ax.axvline(x=width * i / 3, color='white', linestyle='--', alpha=0.8, linewidth=1.5)
        ax.axhline(y=height * i / 3, color='white', linestyle='--', alpha=0.8, linewidth=1.5)

    for x, y in rule_of_thirds_points(results.image_size):
        ax.add_patch(patches.Circle((x, y), min(width, height) / 80, color='white', alpha=0.8))

    for region in results.regions:
        color = 'red' if region is results.main_subject else 'yellow'
        bbox = region.bbox
        ax.add_patch(patches.Rectangle((bbox.x, bbox.y), bbox.width, bbox.height,
                                       fill=False, edgecolor=color, linewidth=2))
        ax.plot(*region.centroid, marker='+', color=color, markersize=12)

    for advice in results.advice:
        if advice.target_position is None:
            continue
        ax.annotate('', xy=advice.target_position, xytext=advice.current_position,
                    arrowprops=dict(arrowstyle='->', color='lime', lw=1 + 3 * advice.intensity))

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Visualization saved to: {save_path}")

    if show:
        plt.show()
    else:
        plt.close(fig)


def print_summary(image_path: Path, results: CompositionResults) -> None:
    print(f"\n{'='*50}")
    print(f"Analysis Results for: {image_path.name}")
    print(f"{'='*50}")
    print(f"Image size: {results.image_size[0]}x{results.image_size[1]} "
          f"(processed at {results.processing_size[0]}x{results.processing_size[1]})")

    if not results.subject_detected:
        print("No salient subject detected")
        return

    score = results.score
    print(f"Salient regions: {len(results.regions)}")
    print(f"Rule of Thirds Score: {score.rule_of_thirds_score:.1f}")
    print(f"Center Score: {score.center_score:.1f}")
    print(f"Best Rule: {score.best_rule}")

    for advice in results.advice:
        print(f"→ {advice.message} (intensity: {advice.intensity:.2f})")

    for recommendation in score.recommendations:
        print(f"• {recommendation}")


def main():
    """Main entry point for the demo script."""
    parser = argparse.ArgumentParser(description='Composition Advisor Demo')
    parser.add_argument('--image', type=str, required=True,
                        help='Path to input image or directory of images')
    parser.add_argument('--model', type=str, default=None,
                        help='Path to a TorchScript saliency model (optional)')
    parser.add_argument('--device', type=str, default='auto',
                        choices=['auto', 'cuda', 'cpu'],
                        help='Device to run the saliency model on')
    parser.add_argument('--batch', action='store_true',
                        help='Process all images in directory (if --image is a directory)')
    parser.add_argument('--target', type=str, default='best', choices=sorted(ADVICE_TARGETS),
                        help='Composition the advice steers towards')
    parser.add_argument('--policy', type=str, default='discovery_order', choices=sorted(SUBJECT_POLICIES),
                        help='How the main subject is chosen among regions')
    parser.add_argument('--threshold', type=float, default=0.01,
                        help='Saliency binarization threshold in [0, 1)')
    parser.add_argument('--max-side', type=int, default=800,
                        help='Longest side of the processing resolution')
    parser.add_argument('--output', type=str, default=None,
                        help='Directory to save JSON results and visualizations')
    parser.add_argument('--show', action='store_true',
                        help='Display the visualization for a single image')

    args = parser.parse_args()

    device = args.device
    if device == 'auto':
        device = 'cuda' if torch.cuda.is_available() else 'cpu'

    oracle = create_saliency_oracle(args.model, device=device)
    analyzer = CompositionAnalyzer(oracle=oracle, config={
        'advice_target': args.target,
        'subject_policy': args.policy,
        'binarization_threshold': args.threshold,
        'max_processing_side': args.max_side
    })

    input_path = Path(args.image)
    image_files = find_images(input_path, args.batch)
    if not image_files:
        logger.error(f"Invalid input path: {input_path}")
        return 1

    output_dir = None
    if args.output:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)

    failures = 0

    for image_file in image_files:
        logger.info(f"Processing: {image_file}")

        try:
            results = analyzer.analyze_file(str(image_file))
        except Exception as e:
            logger.error(f"Error processing {image_file}: {e}")
            failures += 1
            continue

        print_summary(image_file, results)

        save_path = None
        if output_dir is not None:
            json_path = output_dir / f"{image_file.stem}_analysis.json"
            with open(json_path, 'w') as f:
                json.dump(results.to_dict(), f, indent=2)
            logger.info(f"Results saved to: {json_path}")
            save_path = output_dir / f"{image_file.stem}_analysis.png"

        if save_path is not None or (args.show and len(image_files) == 1):
            visualize_results(image_file, results, analyzer.preprocessor, save_path=save_path,
                              show=args.show and len(image_files) == 1)

    analyzer.shutdown()
    logger.info("Demo completed!")

    return 1 if failures == len(image_files) else 0


if __name__ == '__main__':
    sys.exit(main())
