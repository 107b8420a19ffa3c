#!/usr/bin/env python3
"""
Color quantizers.

Every quantizer takes a list of RGB triples and a target count and returns
representative colors ordered by cluster population, largest first. The
number of colors returned is approximate: boxes/clusters may merge or fail to
split, and callers get whatever the clustering actually produced.
"""

import logging
from typing import Protocol

import numpy as np
from PIL import Image
from colorthief import MMCQ
from sklearn.cluster import KMeans

from color import Color
from errors import EmptyInputError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_COLORS = 256


class Quantizer(Protocol):
    def quantize(self, colors, target_count: int) -> list[Color]:
        ...


def _as_color_array(colors) -> np.ndarray:
    """Coerce a sequence of RGB triples to an (N, 3) int64 array."""
    array = np.asarray(colors, dtype=np.int64)
    return array.reshape(-1, 3)


def _check_request(colors: np.ndarray, target_count: int) -> None:
    if len(colors) == 0:
        raise EmptyInputError("Cannot quantize an empty color list")
    if target_count < 1 or target_count > MAX_COLORS:
        raise ValueError(f"Target color count must be 1-{MAX_COLORS}, got {target_count}")


# =============================================================================
# Modified Median Cut
# =============================================================================

class MedianCutQuantizer:
    """
    Modified median cut (MMCQ), the clustering behind Color Thief.

    colorthief's boxes report histogram cell centers, so each box is
    reported here as the truncated mean of the input colors that fall inside
    it instead. Empty boxes are dropped and the rest ordered by population.
    """

    def quantize(self, colors, target_count: int) -> list[Color]:
        colors = _as_color_array(colors)
        _check_request(colors, target_count)

        # MMCQ refuses fewer than 2 colors
        cmap = MMCQ.quantize([tuple(int(v) for v in c) for c in colors], max(2, target_count))

        boxes = sorted((entry['vbox'] for entry in cmap.vboxes.contents),
                       key=lambda vbox: vbox.count, reverse=True)
        shifted = colors >> MMCQ.RSHIFT

        palette = []
        for vbox in boxes:
            lo = np.array([vbox.r1, vbox.g1, vbox.b1])
            hi = np.array([vbox.r2, vbox.g2, vbox.b2])
            members = colors[np.all((shifted >= lo) & (shifted <= hi), axis=1)]
            if len(members) == 0:
                continue
            totals = members.sum(axis=0)
            palette.append(Color(*(int(t) // len(members) for t in totals)))

        logger.debug("Median cut: %d colors -> %d boxes (requested %d)",
                     len(colors), len(palette), target_count)
        return palette


# =============================================================================
# Other backends
# =============================================================================

class PillowQuantizer:
    """Pillow's built-in median cut."""

    def quantize(self, colors, target_count: int) -> list[Color]:
        colors = _as_color_array(colors)
        _check_request(colors, target_count)

        strip = Image.fromarray(colors.astype(np.uint8).reshape(1, -1, 3))
        quantized = strip.quantize(colors=target_count, method=Image.Quantize.MEDIANCUT)

        palette = quantized.getpalette()
        used = quantized.getcolors(maxcolors=MAX_COLORS)
        used.sort(key=lambda entry: (-entry[0], entry[1]))
        return [Color(*palette[index * 3:index * 3 + 3]) for _, index in used]


class KMeansQuantizer:
    """K-means clustering; slower, but better separation on photographs."""

    def __init__(self, random_state: int = 42, n_init: int = 10):
        self.random_state = random_state
        self.n_init = n_init

    def quantize(self, colors, target_count: int) -> list[Color]:
        colors = _as_color_array(colors)
        _check_request(colors, target_count)

        # KMeans cannot find more clusters than distinct points
        n_clusters = min(target_count, len(np.unique(colors, axis=0)))
        kmeans = KMeans(n_clusters=n_clusters, random_state=self.random_state, n_init=self.n_init)
        labels = kmeans.fit_predict(colors.astype(np.float64))

        counts = np.bincount(labels, minlength=n_clusters)
        order = np.argsort(-counts, kind='stable')
        centers = np.clip(kmeans.cluster_centers_, 0, 255)
        return [Color(*(int(v) for v in centers[i])) for i in order if counts[i]]


QUANTIZERS = {
    'mediancut': MedianCutQuantizer,
    'pillow': PillowQuantizer,
    'kmeans': KMeansQuantizer,
}


def get_quantizer(method: str = 'mediancut') -> Quantizer:
    """Instantiate a quantizer by name."""
    try:
        return QUANTIZERS[method]()
    except KeyError:
        raise ValueError(f"Unknown method: {method}")
