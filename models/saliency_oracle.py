"""
Saliency Oracles for Composition Analysis

The composition engine treats saliency prediction as an external
collaborator. This module defines the oracle contract and adapters for
plugging in a saliency source:

- GradientSaliencyOracle: model-free fallback using gradient magnitude
- TorchSaliencyOracle: wraps any pretrained PyTorch saliency network
- CallableSaliencyOracle: wraps a plain function
"""

import cv2
import numpy as np
import torch
import torch.nn.functional as F
from torchvision import transforms
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union
import logging

logger = logging.getLogger(__name__)


class SaliencyOracle(ABC):
    """
    Abstract saliency source.

    ``predict`` receives the processing-resolution image (H, W, 3) in BGR
    format and returns an (H, W) saliency map. Float maps are expected in
    [0, 1]; uint8 maps are interpreted on the 0-255 scale.

    ``output_orientation`` is the EXIF orientation code of the returned map
    relative to the upright input. The analyzer normalizes it before
    binarizing.
    """

    name = "saliency"
    output_orientation = 1

    @abstractmethod
    def predict(self, image: np.ndarray) -> np.ndarray:
        """
        Predict per-pixel saliency.

        Args:
            image: Input image (H, W, 3) in BGR format

        Returns:
            Saliency map (H, W)
        """

        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class GradientSaliencyOracle(SaliencyOracle):
    """
    Model-free saliency from smoothed gradient magnitude.

    Strong edges are a crude proxy for visual prominence; the blur merges
    edge responses of one object into a single blob.
    """

    name = "gradient"

    def __init__(self, blur_kernel: int = 21):
        """
        Args:
            blur_kernel: Odd Gaussian kernel size used to merge edge responses
        """
        if blur_kernel < 1 or blur_kernel % 2 == 0:
            raise ValueError(f"blur_kernel must be a positive odd integer, got {blur_kernel}")

        self.blur_kernel = blur_kernel

    def predict(self, image: np.ndarray) -> np.ndarray:
        if image.dtype == np.bool_:
            image = image.astype(np.uint8) * 255

        channels = 1 if image.ndim == 2 else image.shape[2]
        if channels == 1:
            gray = image.reshape(image.shape[:2])
        elif channels == 4:
            gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        else:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        grad_x = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
        grad_y = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
        gradient_magnitude = np.sqrt(grad_x ** 2 + grad_y ** 2)

        smoothed = cv2.GaussianBlur(gradient_magnitude, (self.blur_kernel, self.blur_kernel), 0)

        peak = smoothed.max()
        if peak > 0:
            return (smoothed / peak).astype(np.float32)

        # Flat image: nothing stands out
        return np.zeros(gray.shape[:2], dtype=np.float32)


class TorchSaliencyOracle(SaliencyOracle):
    """
    Adapter for a pretrained PyTorch saliency network.

    The network receives an ImageNet-normalized RGB batch of shape
    (1, 3, input_size, input_size) and must return a single-channel saliency
    map of any spatial size. Logits are squashed with a sigmoid when
    ``apply_sigmoid`` is set; the map is resized back to the input image.
    """

    name = "torch"

    def __init__(self, model: torch.nn.Module,
                 device: Optional[Union[str, torch.device]] = None,
                 input_size: Optional[int] = 224,
                 apply_sigmoid: bool = False):
        """
        Args:
            model: Saliency network
            device: Device to run the model on
            input_size: Square resolution fed to the model (None keeps the image size)
            apply_sigmoid: Whether the model returns logits
        """
        self.device = torch.device(device) if device is not None else \
            torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        self.model = model.to(self.device)
        self.model.eval()
        self.input_size = input_size
        self.apply_sigmoid = apply_sigmoid

        self.normalize_transform = transforms.Compose([
            transforms.ToTensor(),
            transforms.Normalize(mean=[0.485, 0.456, 0.406],
                                 std=[0.229, 0.224, 0.225])
        ])

        logger.info(f"TorchSaliencyOracle initialized on {self.device}")

    def predict(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]

        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        if self.input_size is not None:
            rgb = cv2.resize(rgb, (self.input_size, self.input_size), interpolation=cv2.INTER_AREA)

        batch = self.normalize_transform(rgb).unsqueeze(0).to(self.device)

        with torch.no_grad():
            output = self.model(batch)

        if isinstance(output, (tuple, list)):
            output = output[0]

        # Bring (H, W), (1, H, W) or (1, 1, H, W) to (1, 1, H, W)
        while output.dim() < 4:
            output = output.unsqueeze(0)
        output = output[:, :1]

        if self.apply_sigmoid:
            output = torch.sigmoid(output)

        output = F.interpolate(output.float(), size=(height, width), mode='bilinear', align_corners=False)
        saliency = output.clamp(0.0, 1.0).squeeze().cpu().numpy()

        return saliency.reshape(height, width).astype(np.float32)


class CallableSaliencyOracle(SaliencyOracle):
    """Wraps a function ``image -> saliency map`` as an oracle."""

    def __init__(self, function: Callable[[np.ndarray], np.ndarray],
                 name: str = "callable", output_orientation: int = 1):
        self.function = function
        self.name = name
        self.output_orientation = output_orientation

    def predict(self, image: np.ndarray) -> np.ndarray:
        return np.asarray(self.function(image))


def create_saliency_oracle(model_path: Optional[str] = None,
                           device: Optional[str] = None) -> SaliencyOracle:
    """
    Build an oracle from a TorchScript checkpoint, or the gradient fallback.

    Args:
        model_path: Path to a TorchScript saliency model (optional)
        device: Device for the model

    Returns:
        Configured SaliencyOracle
    """

    if model_path is None:
        return GradientSaliencyOracle()

    map_location = device or ('cuda' if torch.cuda.is_available() else 'cpu')
    model = torch.jit.load(model_path, map_location=map_location)
    logger.info(f"Loaded saliency model from {model_path}")

    return TorchSaliencyOracle(model, device=map_location)
