"""
HexaImage Converter

A single-file Python CLI tool that converts an orthogonal pixel grid into a
smaller staggered-row ("hexagonal") pixel grid. Each output pixel is resampled
from a weighted 3x3 window of the source; odd output rows are shifted by half a
cell to suggest hexagonal close-packing. Image decoding and encoding via Pillow.

Usage:
    python hexaimage.py --input photo.jpg
    python hexaimage.py --input photo.jpg --file out.png --workers 4 --debug
    python hexaimage.py --import_settings settings.json
    python hexaimage.py --input photo.jpg --export_settings settings.json
"""

import argparse
import concurrent.futures
import enum
import json
import math
import os
import re
import sys
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError


RGB = Tuple[int, int, int]
ProgressCallback = Callable[[float], None]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class HexaImageError(Exception):
    """Base class for all conversion errors."""


class InvalidInputError(HexaImageError, ValueError):
    """Source dimensions or pixel buffer violate the RGBA layout contract."""


class DegenerateOutputError(HexaImageError, ValueError):
    """The scale formula produced a zero-width or zero-height target.

    Attributes:
        source_size: The (W, H) of the rejected source.
        target_size: The (Wh, Hh) the formula produced.
    """

    def __init__(self, source_size: Tuple[int, int], target_size: Tuple[int, int]) -> None:
        """Record both sizes and build the message."""
        self.source_size = source_size
        self.target_size = target_size
        super().__init__(
            f"Source {source_size[0]} x {source_size[1]} is too small: "
            f"hexagonal grid would be {target_size[0]} x {target_size[1]}"
        )


class ConversionCancelledError(HexaImageError):
    """The cancel event was set before the conversion finished."""


def _round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    """Clamp *value* into [low, high]."""
    return low if value < low else high if value > high else value


# ---------------------------------------------------------------------------
# SourceImage
# ---------------------------------------------------------------------------
class SourceImage:
    """Read-only RGBA pixel buffer, row-major with the origin at top-left.

    The buffer is copied to ``bytes`` on construction so that it cannot change
    while a conversion is reading it.

    Attributes:
        width: Image width W in pixels.
        height: Image height H in pixels.
        pixels: The W*H*4 byte buffer.
    """

    def __init__(self, width: int, height: int, pixels: bytes) -> None:
        """Validate and wrap a decoded RGBA buffer.

        Args:
            width: Image width in pixels (> 0).
            height: Image height in pixels (> 0).
            pixels: Bytes-like buffer of exactly width*height*4 bytes.

        Raises:
            InvalidInputError: If a dimension is not a positive integer or the
                buffer length does not match.
        """
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"Image {name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidInputError(f"Image {name} must be positive, got {value}")
        # bytes(n) would allocate n zero bytes instead of rejecting an int
        if isinstance(pixels, int):
            raise InvalidInputError(f"Pixel buffer must be bytes-like, got {pixels!r}")
        try:
            data = bytes(pixels)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Pixel buffer is not a byte buffer: {e}") from e
        expected = width * height * 4
        if len(data) != expected:
            raise InvalidInputError(
                f"Pixel buffer has {len(data)} bytes, expected {expected} "
                f"for {width} x {height} RGBA"
            )
        self._width: int = width
        self._height: int = height
        self._pixels: bytes = data

    @property
    def width(self) -> int:
        """Return the image width W."""
        return self._width

    @property
    def height(self) -> int:
        """Return the image height H."""
        return self._height

    @property
    def pixels(self) -> bytes:
        """Return the read-only RGBA buffer."""
        return self._pixels

    def get(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the (R, G, B, A) tuple at (x, y).

        Raises:
            IndexError: If (x, y) lies outside the image.
        """
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self._width} x {self._height} image")
        i = (y * self._width + x) * 4
        p = self._pixels
        return (p[i], p[i + 1], p[i + 2], p[i + 3])

    @classmethod
    def from_pil(cls, image: Image.Image) -> "SourceImage":
        """Build a SourceImage from any Pillow image (converted to RGBA)."""
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        w, h = rgba.size
        return cls(w, h, rgba.tobytes())

    @classmethod
    def open(cls, path: str) -> "SourceImage":
        """Decode an image file with Pillow.

        Raises:
            FileNotFoundError: If the file does not exist.
            PIL.UnidentifiedImageError: If Pillow cannot decode the file.
        """
        with Image.open(path) as img:
            img.load()
            return cls.from_pil(img)


# ---------------------------------------------------------------------------
# TargetImage
# ---------------------------------------------------------------------------
class TargetImage:
    """Freshly allocated RGBA result of a conversion; owned by the caller."""

    def __init__(self, width: int, height: int, pixels: bytearray) -> None:
        """Wrap a filled RGBA buffer of width*height*4 bytes."""
        self.width: int = width
        self.height: int = height
        self.pixels: bytearray = pixels

    def get(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the (R, G, B, A) tuple at (x, y); IndexError outside the image."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width} x {self.height} image")
        i = (y * self.width + x) * 4
        p = self.pixels
        return (p[i], p[i + 1], p[i + 2], p[i + 3])

    def to_pil(self) -> Image.Image:
        """Return the buffer as an RGBA Pillow image."""
        return Image.frombytes("RGBA", (self.width, self.height), bytes(self.pixels))

    def save(self, path: str) -> None:
        """Encode the buffer as PNG at *path*."""
        self.to_pil().save(path, "PNG")


# ---------------------------------------------------------------------------
# DimensionCalculator
# ---------------------------------------------------------------------------
class DimensionCalculator:
    """Derives hexagonal grid dimensions from the source dimensions.

    Hexagonal packing needs fewer cells to cover the same area, so the grid
    shrinks by fixed factors on each axis.
    """

    SCALE_X: float = 0.85
    SCALE_Y: float = 0.9

    def compute(self, width: int, height: int) -> Tuple[int, int]:
        """Return (Wh, Hh) = (floor(W * 0.85), floor(H * 0.9)).

        Args:
            width: Source width W (> 0).
            height: Source height H (> 0).

        Returns:
            The target (width, height).

        Raises:
            InvalidInputError: If a dimension is not a positive integer.
            DegenerateOutputError: If either target dimension is 0, which
                happens for any W < 2 or H < 2.
        """
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidInputError(f"Source {name} must be a positive integer, got {value!r}")
        hex_w = int(math.floor(width * self.SCALE_X))
        hex_h = int(math.floor(height * self.SCALE_Y))
        if hex_w == 0 or hex_h == 0:
            raise DegenerateOutputError((width, height), (hex_w, hex_h))
        return hex_w, hex_h


# ---------------------------------------------------------------------------
# CoordinateMapper
# ---------------------------------------------------------------------------
class CoordinateMapper:
    """Maps hexagonal grid positions to source-space sampling centres.

    Odd rows are staggered by half a cell (0.5 * scale_x source pixels).
    Results are not clamped; the sampler owns bounds handling.
    """

    def __init__(self, src_width: int, src_height: int, hex_width: int, hex_height: int) -> None:
        """Precompute the scale factors between source and hexagonal grids."""
        self._scale_x: float = src_width / hex_width
        self._scale_y: float = src_height / hex_height

    @property
    def scale_x(self) -> float:
        """Return the source pixels per hexagonal column, W / Wh."""
        return self._scale_x

    @property
    def scale_y(self) -> float:
        """Return the source pixels per hexagonal row, H / Hh."""
        return self._scale_y

    def stagger(self, hex_y: int) -> float:
        """Return the horizontal offset in cells: 0.0 on even rows, 0.5 on odd."""
        return (hex_y % 2) * 0.5

    def map(self, hex_x: int, hex_y: int) -> Tuple[int, int]:
        """Compute the source centre (centerX, centerY) for a hexagonal pixel.

        Args:
            hex_x: Column in the hexagonal grid.
            hex_y: Row in the hexagonal grid.

        Returns:
            The rounded (half away from zero) source coordinates.
        """
        center_x = _round_half_away((hex_x + self.stagger(hex_y)) * self._scale_x)
        center_y = _round_half_away(hex_y * self._scale_y)
        return center_x, center_y


# ---------------------------------------------------------------------------
# WeightedSampler
# ---------------------------------------------------------------------------
class WeightedSampler:
    """Weighted 3x3 average around a source centre with clamp-to-edge taps.

    The centre tap carries half the weight; the remaining half is split evenly
    across the 8 neighbours. Taps that clamp onto the same edge pixel keep
    their own weight.
    """

    CENTER_WEIGHT: float = 0.5
    OUTER_WEIGHT: float = 0.5 / 8

    _OFFSETS: List[Tuple[int, int]] = [
        (dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1)
    ]

    def __init__(self, source: SourceImage) -> None:
        """Sample from *source*, which is only read."""
        self._source: SourceImage = source

    def window(self, center_x: int, center_y: int) -> List[Tuple[int, int, float]]:
        """Return the 9 clamped (x, y, weight) taps around a centre.

        Taps are ordered row by row, top-left first.
        """
        max_x = self._source.width - 1
        max_y = self._source.height - 1
        taps: List[Tuple[int, int, float]] = []
        for dx, dy in self._OFFSETS:
            weight = self.CENTER_WEIGHT if dx == 0 and dy == 0 else self.OUTER_WEIGHT
            taps.append((
                _clamp(center_x + dx, 0, max_x),
                _clamp(center_y + dy, 0, max_y),
                weight,
            ))
        return taps

    def sample(self, center_x: int, center_y: int) -> RGB:
        """Compute the weighted colour around (center_x, center_y).

        Accumulates in floating point, normalises by the total weight and
        rounds once at the end.

        Args:
            center_x: Source x of the centre tap; may be out of range.
            center_y: Source y of the centre tap; may be out of range.

        Returns:
            An (R, G, B) tuple with each channel in [0, 255].
        """
        width = self._source.width
        pixels = self._source.pixels
        total_r = total_g = total_b = 0.0
        total_weight = 0.0
        for x, y, weight in self.window(center_x, center_y):
            i = (y * width + x) * 4
            total_r += pixels[i] * weight
            total_g += pixels[i + 1] * weight
            total_b += pixels[i + 2] * weight
            total_weight += weight

        return (
            _clamp(_round_half_away(total_r / total_weight), 0, 255),
            _clamp(_round_half_away(total_g / total_weight), 0, 255),
            _clamp(_round_half_away(total_b / total_weight), 0, 255),
        )


# ---------------------------------------------------------------------------
# BufferWriter
# ---------------------------------------------------------------------------
class BufferWriter:
    """Row-major RGBA output buffer that forces full opacity."""

    def __init__(self, width: int, height: int) -> None:
        """Allocate a zeroed width*height*4 buffer."""
        self._width: int = width
        self._height: int = height
        self._pixels: bytearray = bytearray(width * height * 4)

    def write(self, hex_x: int, hex_y: int, rgb: RGB) -> None:
        """Store (R, G, B, 255) at (hex_x, hex_y).

        Raises:
            IndexError: If the position lies outside the target grid.
        """
        if not (0 <= hex_x < self._width and 0 <= hex_y < self._height):
            raise IndexError(
                f"Write at ({hex_x}, {hex_y}) outside {self._width} x {self._height} target"
            )
        i = (hex_y * self._width + hex_x) * 4
        self._pixels[i] = rgb[0]
        self._pixels[i + 1] = rgb[1]
        self._pixels[i + 2] = rgb[2]
        self._pixels[i + 3] = 255

    def result(self) -> TargetImage:
        """Return the filled buffer as a TargetImage."""
        return TargetImage(self._width, self._height, self._pixels)


# ---------------------------------------------------------------------------
# HexagonalResampler
# ---------------------------------------------------------------------------
class HexagonalResampler:
    """Drives the dimension, mapping, sampling and writing steps over an image.

    Rows are independent, so with ``workers > 1`` they are rendered on a
    thread pool. Each row writes only its own slice of the output buffer and
    the source is shared read-only. The instance keeps no per-image state.

    Attributes:
        workers: Number of rows rendered concurrently (>= 1).
    """

    def __init__(self, workers: int = 1) -> None:
        """Create a resampler rendering *workers* rows at once."""
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ValueError(f"workers must be an integer >= 1, got {workers!r}")
        self.workers: int = workers
        self._dimensions = DimensionCalculator()

    def resample(
        self,
        source: SourceImage,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TargetImage:
        """Convert *source* to a new hexagonal-grid TargetImage.

        Args:
            source: The validated source image.
            progress: Optional callback receiving rows_done / Hh after each
                finished row, always from the calling thread.
            cancel_event: Optional event checked before each row.

        Returns:
            A TargetImage of floor(W*0.85) x floor(H*0.9) pixels.

        Raises:
            DegenerateOutputError: If the target would have a zero dimension.
            ConversionCancelledError: If *cancel_event* was set; no partial
                result is returned.
        """
        hex_w, hex_h = self._dimensions.compute(source.width, source.height)
        mapper = CoordinateMapper(source.width, source.height, hex_w, hex_h)
        sampler = WeightedSampler(source)
        writer = BufferWriter(hex_w, hex_h)

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        def render_row(hex_y: int) -> bool:
            if cancelled():
                return False
            for hex_x in range(hex_w):
                cx, cy = mapper.map(hex_x, hex_y)
                writer.write(hex_x, hex_y, sampler.sample(cx, cy))
            return True

        done = 0
        if self.workers == 1:
            for hex_y in range(hex_h):
                if not render_row(hex_y):
                    break
                done += 1
                if progress:
                    progress(done / hex_h)
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as ex:
                futs = [ex.submit(render_row, hex_y) for hex_y in range(hex_h)]
                for fut in concurrent.futures.as_completed(futs):
                    if not fut.result():
                        continue
                    done += 1
                    if progress and not cancelled():
                        progress(done / hex_h)

        if done < hex_h:
            raise ConversionCancelledError(f"Conversion cancelled after {done} of {hex_h} rows")
        return writer.result()


def resample(
    source: SourceImage,
    progress: Optional[ProgressCallback] = None,
    workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> TargetImage:
    """Pure-function entry point: ``resample(source) -> target``."""
    return HexagonalResampler(workers=workers).resample(
        source, progress=progress, cancel_event=cancel_event
    )


# ---------------------------------------------------------------------------
# ConversionReport
# ---------------------------------------------------------------------------
class ConversionReport:
    """Dimensions and timing of one finished conversion.

    Attributes:
        source_width: Source width W.
        source_height: Source height H.
        target_width: Hexagonal grid width Wh.
        target_height: Hexagonal grid height Hh.
        elapsed: Wall-clock conversion time in seconds.
    """

    def __init__(
        self,
        source_width: int,
        source_height: int,
        target_width: int,
        target_height: int,
        elapsed: float,
    ) -> None:
        """Record the dimensions and elapsed time of a conversion."""
        self.source_width = source_width
        self.source_height = source_height
        self.target_width = target_width
        self.target_height = target_height
        self.elapsed = elapsed

    @property
    def source_pixels(self) -> int:
        """Return the pixel count W*H."""
        return self.source_width * self.source_height

    @property
    def target_pixels(self) -> int:
        """Return the pixel count Wh*Hh."""
        return self.target_width * self.target_height

    @property
    def compression_ratio(self) -> float:
        """Return the pixel-count reduction 1 - (Wh*Hh)/(W*H)."""
        return 1.0 - self.target_pixels / self.source_pixels

    def summary(self) -> str:
        """Return the reduction as e.g. '23.5% fewer pixels'."""
        return f"{self.compression_ratio * 100:.1f}% fewer pixels"


def convert(
    source: SourceImage,
    progress: Optional[ProgressCallback] = None,
    workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[TargetImage, ConversionReport]:
    """Resample *source* and time it.

    Returns:
        A tuple of (target image, conversion report).
    """
    start = time.perf_counter()
    target = resample(source, progress=progress, workers=workers, cancel_event=cancel_event)
    elapsed = time.perf_counter() - start
    report = ConversionReport(
        source.width, source.height, target.width, target.height, elapsed,
    )
    return target, report


# ---------------------------------------------------------------------------
# ViewState
# ---------------------------------------------------------------------------
class View(enum.Enum):
    """Selects one of the two image views."""

    ORIGINAL = "original"
    HEXAGONAL = "hexagonal"


class ViewState:
    """Zoom and pan state for one image view.

    Attributes:
        zoom: Magnification, clamped to [MIN_ZOOM, MAX_ZOOM].
        pan_x: Horizontal pan offset in screen pixels.
        pan_y: Vertical pan offset in screen pixels.
        is_panning: True between start_pan() and end_pan().
        last_pan_point: Pointer position of the last pan event, or None.
    """

    MIN_ZOOM: float = 0.1
    MAX_ZOOM: float = 5.0
    ZOOM_IN_FACTOR: float = 1.2
    ZOOM_OUT_FACTOR: float = 0.8

    def __init__(self) -> None:
        """Start at zoom 1 with no pan."""
        self.zoom: float = 1.0
        self.pan_x: float = 0.0
        self.pan_y: float = 0.0
        self.is_panning: bool = False
        self.last_pan_point: Optional[Tuple[float, float]] = None

    @property
    def zoom_percent(self) -> int:
        """Return the zoom as a rounded percentage."""
        return _round_half_away(self.zoom * 100)

    def zoom_by(self, factor: float) -> float:
        """Multiply the zoom by *factor*, clamp it, and return the new zoom."""
        self.zoom = max(self.MIN_ZOOM, min(self.MAX_ZOOM, self.zoom * factor))
        return self.zoom

    def zoom_in(self) -> float:
        """Zoom in by ZOOM_IN_FACTOR."""
        return self.zoom_by(self.ZOOM_IN_FACTOR)

    def zoom_out(self) -> float:
        """Zoom out by ZOOM_OUT_FACTOR."""
        return self.zoom_by(self.ZOOM_OUT_FACTOR)

    def wheel(self, delta_y: float) -> float:
        """Zoom out by 0.9 for a positive wheel delta, otherwise in by 1.1."""
        return self.zoom_by(0.9 if delta_y > 0 else 1.1)

    def start_pan(self, x: float, y: float) -> None:
        """Begin a pan at pointer position (x, y)."""
        self.is_panning = True
        self.last_pan_point = (x, y)

    def pan_to(self, x: float, y: float) -> bool:
        """Move the pan offset by the pointer delta since the last event.

        Returns:
            True if the view moved, False when no pan is in progress.
        """
        if not self.is_panning or self.last_pan_point is None:
            return False
        last_x, last_y = self.last_pan_point
        self.pan_x += x - last_x
        self.pan_y += y - last_y
        self.last_pan_point = (x, y)
        return True

    def end_pan(self) -> None:
        """Stop panning and forget the last pointer position."""
        self.is_panning = False
        self.last_pan_point = None

    def reset(self) -> None:
        """Restore zoom 1 and zero pan; ends any pan in progress."""
        self.zoom = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.end_pan()


class ViewPair:
    """The original and hexagonal views, each with its own ViewState."""

    def __init__(self) -> None:
        """Create both views at zoom 1 with no pan."""
        self.original: ViewState = ViewState()
        self.hexagonal: ViewState = ViewState()

    def select(self, view: View) -> ViewState:
        """Return the ViewState for *view*; ValueError for anything but a View."""
        if view is View.ORIGINAL:
            return self.original
        if view is View.HEXAGONAL:
            return self.hexagonal
        raise ValueError(f"Unknown view: {view!r}")

    def reset(self) -> None:
        """Reset both views."""
        self.original.reset()
        self.hexagonal.reset()


# ---------------------------------------------------------------------------
# SettingsManager
# ---------------------------------------------------------------------------
class SettingsManager:
    """JSON import/export of parameter sets with CLI-precedence logic.

    JSON overrides argparse defaults, explicit CLI args override JSON.
    """

    # Keys that are persisted to JSON.
    _PERSISTED_KEYS: List[str] = ["input", "file", "workers", "progress", "debug"]

    def export_settings(self, params: argparse.Namespace, path: str) -> None:
        """Write the persisted parameters to a JSON file.

        Raises:
            OSError: If the file cannot be written.
        """
        data: Dict = {key: getattr(params, key, None) for key in self._PERSISTED_KEYS}
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def import_settings(self, path: str) -> Dict:
        """Load a settings dictionary from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
        """
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def merge_settings(
        self,
        defaults: argparse.Namespace,
        json_settings: Dict,
        explicit_keys: set,
    ) -> argparse.Namespace:
        """Apply JSON values to *defaults* for every key not given on the CLI."""
        for key in self._PERSISTED_KEYS:
            if key in json_settings and key not in explicit_keys:
                setattr(defaults, key, json_settings[key])
        return defaults


# ---------------------------------------------------------------------------
# Version helper
# ---------------------------------------------------------------------------
def _changelog_version(fallback: str = "0.0.0") -> str:
    """Read the highest version from CHANGELOG.md next to this script.

    Returns *fallback* when the file is missing or has no ``## [X.Y.Z]``
    heading.
    """
    changelog = os.path.join(os.path.dirname(os.path.abspath(__file__)), "CHANGELOG.md")
    try:
        with open(changelog, "r", encoding="utf-8") as fh:
            for line in fh:
                m = re.match(r"^##\s+\[(\d+\.\d+\.\d+)\]", line)
                if m:
                    return m.group(1)
    except OSError:
        pass
    return fallback


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
class Application:
    """Top-level entry point for the HexaImage Converter.

    Orchestrates CLI argument parsing, settings loading, decoding, conversion,
    PNG output, and the debug report.
    """

    VERSION:      str = _changelog_version("1.0.0")
    BUILD_DATE:   str = "2026-10-19"
    TITLE:        str = "HexaImage Converter"
    AUTHOR:       str = "HexaImage contributors"
    BANNER_WIDTH: int = 60

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Execute the full application pipeline.

        Exits with status 1 after printing ``Error: ...`` to stderr on any
        settings, decoding or conversion failure.

        Args:
            argv: Argument list; defaults to ``sys.argv[1:]``.
        """
        # Step 1: Parse CLI arguments and detect explicit keys
        args, explicit_keys = self._parse_args(argv)

        # Step 2: Import settings if requested
        if args.import_settings:
            if not args.import_settings.lower().endswith(".json"):
                args.import_settings += ".json"
            try:
                manager = SettingsManager()
                json_data = manager.import_settings(args.import_settings)
                args = manager.merge_settings(args, json_data, explicit_keys)
            except FileNotFoundError:
                self._fail(f"Settings file not found: '{args.import_settings}'")
            except json.JSONDecodeError as e:
                self._fail(f"Malformed JSON in settings file: {e}")

        # Step 3: Export settings if requested
        export_path = None
        if args.export_settings:
            export_path = args.export_settings
            if not export_path.lower().endswith(".json"):
                export_path += ".json"
            try:
                SettingsManager().export_settings(args, export_path)
            except OSError as e:
                self._fail(f"Cannot write settings file: {e}")

        # Step 4: Validate parameters
        if not args.input:
            self._fail("No input image given (use --input)")
        if not isinstance(args.input, str):
            self._fail(f"Invalid input path '{args.input}'. Must be a string")
        if not isinstance(args.file, str) or not args.file:
            self._fail(f"Invalid output file '{args.file}'. Must be a non-empty string")
        for key in ("progress", "debug"):
            if not isinstance(getattr(args, key), bool):
                self._fail(f"Invalid {key} setting '{getattr(args, key)}'. Must be true or false")
        if isinstance(args.workers, bool) or not isinstance(args.workers, int) or args.workers < 1:
            self._fail(f"Invalid worker count '{args.workers}'. Must be an integer >= 1")

        # Step 5: Decode
        try:
            source = SourceImage.open(args.input)
        except FileNotFoundError:
            self._fail(f"Input image not found: '{args.input}'")
        except UnidentifiedImageError:
            self._fail(f"Cannot decode input image: '{args.input}'")
        except (OSError, InvalidInputError) as e:
            self._fail(f"Cannot read input image: {e}")

        # Step 6: Convert
        progress = self._print_progress() if args.progress else None
        try:
            target, report = convert(source, progress=progress, workers=args.workers)
        except HexaImageError as e:
            self._fail(str(e))

        # Step 7: Ensure .png extension and save
        out_file = args.file
        if not out_file.lower().endswith(".png"):
            out_file += ".png"
        try:
            target.save(out_file)
        except OSError as e:
            self._fail(f"Cannot write output image: {e}")
        file_size = os.path.getsize(out_file)

        self._print_banner()
        print(f"  Saved: {out_file} ({self._format_file_size(file_size)})")
        if export_path:
            print(f"  Saved: {export_path} ({self._format_file_size(os.path.getsize(export_path))})")

        # Step 8: Debug output
        if args.debug:
            self._print_debug(args=args, report=report)
        print()

    def _fail(self, message: str) -> None:
        """Print an error to stderr and exit with status 1."""
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)

    def _print_progress(self) -> ProgressCallback:
        """Return a callback that prints progress at every 10% step."""
        last = [-1]

        def report(fraction: float) -> None:
            step = int(fraction * 10)
            if step > last[0]:
                last[0] = step
                print(f"  Progress: {step * 10}%")

        return report

    def _parse_args(self, argv: Optional[List[str]] = None) -> Tuple[argparse.Namespace, set]:
        """Parse CLI arguments and detect which were explicitly provided.

        Returns:
            A tuple of (parsed Namespace, set of explicitly-provided key names).
        """
        args = self._build_parser().parse_args(argv)

        # Second parse with SUPPRESS defaults to detect explicit keys
        explicit_args = self._build_parser(suppress_defaults=True).parse_args(argv)
        explicit_keys = set(vars(explicit_args).keys())

        return args, explicit_keys

    def _build_parser(self, suppress_defaults: bool = False) -> argparse.ArgumentParser:
        """Build the argparse ArgumentParser.

        Args:
            suppress_defaults: If True, set all defaults to SUPPRESS to
                detect explicitly-provided CLI args.
        """
        d = argparse.SUPPRESS if suppress_defaults else None

        banner = self._banner_text()

        class _BannerParser(argparse.ArgumentParser):
            """ArgumentParser that prints the banner before help text."""

            def print_help(self, file=None):
                if file is None:
                    file = sys.stdout
                file.write(banner + "\n\n")
                super().print_help(file)

        parser = _BannerParser(
            description="HexaImage Converter - resample an image onto a staggered-row hexagonal grid.",
        )

        parser.add_argument("--input", type=str, default=d,
                            help="Source image file (any format Pillow can decode)")
        parser.add_argument("--file", type=str, default=d if d else "hexagonal-image.png",
                            help="Output PNG filename (default: hexagonal-image.png)")
        parser.add_argument("--workers", type=int, default=d if d else 1,
                            help="Rows converted in parallel (default: 1)")
        parser.add_argument("--progress", nargs="?", const=True, default=d if d else False,
                            type=self._parse_bool_flag,
                            help="Print conversion progress")
        parser.add_argument("--debug", nargs="?", const=True, default=d if d else False,
                            type=self._parse_bool_flag,
                            help="Enable debug output")
        parser.add_argument("--export_settings", type=str, default=None,
                            help="Export parameters to a JSON file")
        parser.add_argument("--import_settings", type=str, default=None,
                            help="Import parameters from a JSON file")

        return parser

    def _parse_bool_flag(self, value: str) -> bool:
        """Parse a boolean flag value ('true'/'false' or bare flag)."""
        if isinstance(value, bool):
            return value
        if value.lower() in ("true", "1", "yes"):
            return True
        if value.lower() in ("false", "0", "no"):
            return False
        raise argparse.ArgumentTypeError(f"Boolean value expected, got '{value}'")

    def _banner_text(self) -> str:
        """Build the application banner as a string."""
        w = self.BANNER_WIDTH
        inner = w - 2  # space between │ and │
        lines = [
            "┌" + "─" * inner + "┐",
            f"│{'  Program:    ' + self.TITLE:<{inner}}│",
            f"│{'  Version:    ' + self.VERSION:<{inner}}│",
            f"│{'  Build Date: ' + self.BUILD_DATE:<{inner}}│",
            f"│{'  Author:     ' + self.AUTHOR:<{inner}}│",
            "└" + "─" * inner + "┘",
        ]
        return "\n".join(lines)

    def _print_banner(self) -> None:
        """Print the application banner to stdout."""
        print(self._banner_text())

    def _print_debug(self, args: argparse.Namespace, report: ConversionReport) -> None:
        """Print the conversion report to stdout."""
        scale_x = report.source_width / report.target_width
        scale_y = report.source_height / report.target_height
        print(f"\n  Input:            {args.input}")
        print(f"  Resolution:       {report.source_width} x {report.source_height}")
        print(f"  Hexagonal pixels: {report.target_width} x {report.target_height}")
        print(f"  Scale:            {scale_x:.4f} x {scale_y:.4f}")
        print(f"  Workers:          {args.workers}")
        print(f"  Processing time:  {report.elapsed:.2f}s")
        print(f"  Compression:      {report.summary()}")

    def _format_file_size(self, size_bytes: int) -> str:
        """Format a file size in human-readable form (e.g. '1.23 MB')."""
        if size_bytes < 1024:
            return f"{size_bytes} B"
        elif size_bytes < 1024 * 1024:
            return f"{size_bytes / 1024:.2f} KB"
        else:
            return f"{size_bytes / (1024 * 1024):.2f} MB"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def main() -> None:
    """Main entry point for the HexaImage Converter."""
    if sys.stdout and hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    app = Application()
    app.run()


if __name__ == "__main__":
    main()
