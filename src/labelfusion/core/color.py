"""
Konwersja kolorów RGB -> CIE L*a*b* (8-bit)

Skala zgodna z 8-bitowym Lab używanym w przetwarzaniu obrazu:
L w [0, 255] (L * 255 / 100), a i b przesunięte o +128.
"""

import numpy as np
from skimage.color import rgb2lab


def rgb_to_lab(colors: np.ndarray) -> np.ndarray:
    """
    Konwertuje kolory RGB uint8 na 8-bitowy Lab (biały punkt D65)

    Args:
        colors: (P, 3) RGB uint8

    Returns:
        (P, 3) Lab uint8
    """
    colors = np.asarray(colors)
    if len(colors) == 0:
        return np.zeros((0, 3), dtype=np.uint8)

    # rgb2lab oczekuje obrazu (..., 3) w [0, 1]
    lab = rgb2lab(colors.reshape(-1, 1, 3).astype(np.float64) / 255.0).reshape(-1, 3)

    scaled = np.stack([lab[:, 0] * 255.0 / 100.0, lab[:, 1] + 128.0, lab[:, 2] + 128.0], axis=1)
    return np.clip(np.round(scaled), 0, 255).astype(np.uint8)
