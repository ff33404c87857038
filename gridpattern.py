"""
gridpattern.py
==============

A small, deterministic generator for grid-based vector patterns. A single
configuration value (shape type, size range, spacing, opacity falloff,
rotation, colors and a seed) is turned into an ordered list of shapes laid out
on a regular grid, which can then be written out as a standalone SVG or
rasterised to PNG.

Key features
------------
- Five shape types: dots, squares, triangles, lines, plus.
- Opacity falloff patterns that combine with a base opacity:
    * uniform   (flat)
    * linear    (left to right ramp)
    * radial    (bright center, fading to the corners)
    * angular   (sweep around the center)
    * wave      (seeded sine/cosine interference)
- Sizes shrink from the canvas center outwards, with a small seeded jitter.
- Bit-exact reproducible randomness (mulberry32): the same configuration
  always yields the same pattern, on any machine.
- Immutable configuration; ``generate`` is memoized on the config value, so
  a control layer can call it on every change without bookkeeping.

Quick start
-----------
>>> from gridpattern import PatternConfig, export_svg
>>> cfg = PatternConfig(shape_type="plus", opacity_pattern="radial",
...                     min_size=1, max_size=8, spacing=16, seed=7)
>>> export_svg(cfg, "pattern.svg")
'pattern.svg'

Command line
------------
$ gridpattern --out pattern.svg --shape triangles --opacity-pattern wave \
    --min-size 1 --max-size 9 --spacing 18 --rotation 30 --seed 0.42
$ gridpattern --config my_pattern.json --out preview.png --scale 2

Notes on seeds
--------------
Seeds are coerced to the 32-bit generator state the way the original browser
tool did it: round down to an integer, then wrap modulo 2**32. A fractional
seed such as 0.42 therefore starts the random stream from state 0 (and -0.42
from state 2**32 - 1), while the fractional part still shifts the phase of
the ``wave`` opacity pattern.

License: MIT
"""

import argparse
import functools
import json
import logging
import math
import random
from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import svgwrite
from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

DEFAULT_OUT = "pattern.svg"


# ---------------------------- Utilities ------------------------------------

def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' to (r,g,b). Handles shorthand '#RGB' too."""
    h = hex_color.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c*2 for c in h)
    if len(h) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        r = int(h[0:2], 16)
        g = int(h[2:4], 16)
        b = int(h[4:6], 16)
    except ValueError:
        raise ValueError(f"Invalid hex color: {hex_color!r}") from None
    return (r, g, b)


def normalize_hex(hex_color: str) -> str:
    """Canonical lowercase '#rrggbb' form of any accepted hex color."""
    return "#%02x%02x%02x" % hex_to_rgb(hex_color)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def to_uint32(value: float) -> int:
    """Map any number onto the 32-bit unsigned range (floor, then wrap).

    Non-finite values map to 0.
    """
    if not math.isfinite(value):
        return 0
    return math.floor(value) & 0xFFFFFFFF


def normalize_degrees(angle: float) -> float:
    """Fold an angle into [0, 360)."""
    angle = float(angle) % 360.0
    # tiny negative inputs round up to exactly 360.0
    return 0.0 if angle == 360.0 else angle


def rotate_points(points, angle_rad: float, origin: Tuple[float, float] = (0.0, 0.0)) -> np.ndarray:
    """Rotate an (N, 2) array of points about ``origin``.

    Uses the SVG convention (y axis pointing down), so a positive angle turns
    clockwise on screen, matching ``transform="rotate(...)"``.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    o = np.asarray(origin, dtype=float)
    ca, sa = math.cos(angle_rad), math.sin(angle_rad)
    rot = np.array([[ca, -sa], [sa, ca]])
    return (pts - o) @ rot.T + o


# ---------------------------- Random source --------------------------------

class Mulberry32:
    """Seeded 32-bit PRNG producing floats in [0, 1).

    The sequence is bit-for-bit identical to the classic JavaScript
    ``mulberry32`` so patterns can be reproduced across implementations.
    All arithmetic is masked back to 32 bits after every add and multiply.
    """

    MASK = 0xFFFFFFFF
    INCREMENT = 0x6D2B79F5

    def __init__(self, seed: float = 0):
        self.seed = seed
        self.state = to_uint32(seed)

    def next_uint32(self) -> int:
        self.state = (self.state + self.INCREMENT) & self.MASK
        t = self.state
        t = ((t ^ (t >> 15)) * (t | 1)) & self.MASK
        t ^= (t + ((t ^ (t >> 7)) * (t | 61))) & self.MASK
        return (t ^ (t >> 14)) & self.MASK

    def next(self) -> float:
        return self.next_uint32() / 4294967296.0

    __call__ = next

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.next()


# ---------------------------- Configuration --------------------------------

SHAPE_TYPES = ("dots", "squares", "triangles", "lines", "plus")
OPACITY_PATTERN_NAMES = ("uniform", "linear", "radial", "angular", "wave")


@dataclass(frozen=True)
class PatternConfig:
    """Every control of the pattern. Immutable: use ``update_config`` to change it.

    Construction validates the values. Out-of-range values that have an
    obvious repair (reversed size bounds, non-finite seed, base opacity
    outside [0, 1]) are repaired with a warning; everything else raises
    ``ValueError``.
    """
    canvas_width: float = 400
    canvas_height: float = 400
    spacing: float = 20
    min_size: float = 0.5
    max_size: float = 5
    opacity_pattern: str = "uniform"
    base_opacity: float = 1.0
    randomize_opacity: bool = False
    rotation: float = 0.0              # degrees, about each shape's own center
    seed: float = 0.0
    shape_type: str = "dots"
    shape_color: str = "#ffffff"
    background_color: str = "#1a1a1a"

    def __post_init__(self):
        if not (self.canvas_width > 0 and self.canvas_height > 0
                and math.isfinite(self.canvas_width) and math.isfinite(self.canvas_height)):
            raise ValueError(
                f"Canvas size must be positive and finite, got {self.canvas_width}x{self.canvas_height}")
        # spacing <= 0 would never finish walking the grid
        if not self.spacing > 0:
            raise ValueError(f"Spacing must be positive, got {self.spacing}")
        if self.min_size < 0 or self.max_size < 0:
            raise ValueError(f"Sizes must be non-negative, got {self.min_size}..{self.max_size}")
        if self.shape_type not in SHAPE_TYPES:
            raise ValueError(f"Unknown shape type: {self.shape_type!r}. Choose from {list(SHAPE_TYPES)}")
        if self.opacity_pattern not in OPACITY_PATTERN_NAMES:
            raise ValueError(
                f"Unknown opacity pattern: {self.opacity_pattern!r}. Choose from {list(OPACITY_PATTERN_NAMES)}")

        set_ = functools.partial(object.__setattr__, self)
        set_("shape_color", normalize_hex(self.shape_color))
        set_("background_color", normalize_hex(self.background_color))
        set_("randomize_opacity", bool(self.randomize_opacity))

        if self.max_size < self.min_size:
            logger.warning("max_size %s < min_size %s; swapping", self.max_size, self.min_size)
            set_("min_size", self.max_size)
            set_("max_size", self.min_size)
        if not math.isfinite(self.seed):
            logger.warning("Non-finite seed %r replaced with 0", self.seed)
            set_("seed", 0.0)
        if not 0.0 <= self.base_opacity <= 1.0:
            logger.warning("base_opacity %s clamped into [0, 1]", self.base_opacity)
            set_("base_opacity", clamp(self.base_opacity, 0.0, 1.0))
        if not math.isfinite(self.rotation):
            logger.warning("Non-finite rotation %r replaced with 0", self.rotation)
            set_("rotation", 0.0)
        set_("rotation", normalize_degrees(self.rotation))

    @property
    def center(self) -> Tuple[float, float]:
        return (self.canvas_width / 2, self.canvas_height / 2)

    @property
    def max_distance(self) -> float:
        cx, cy = self.center
        return math.hypot(cx, cy)


def update_config(config: PatternConfig, **changes) -> PatternConfig:
    """Return a new validated config with ``changes`` applied."""
    return replace(config, **changes)


def load_config_data(path: str) -> dict:
    """Read a JSON object of PatternConfig field names to values, unvalidated."""
    with open(path, "r", encoding="utf-8") as jf:
        data = json.load(jf)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: config JSON must be an object")
    known = {f.name for f in fields(PatternConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"{path}: unknown config keys {unknown}")
    return data


def load_config(path: str) -> PatternConfig:
    return PatternConfig(**load_config_data(path))


# ---------------------------- Opacity patterns -----------------------------

# Each pattern maps a grid point to a factor that scales base_opacity.
OpacityFn = Callable[[PatternConfig, float, float, float], float]


def _uniform(config: PatternConfig, x: float, y: float, distance: float) -> float:
    return 1.0


def _linear(config, x, y, distance):
    return x / config.canvas_width


def _radial(config, x, y, distance):
    return 1 - distance / config.max_distance


def _angular(config, x, y, distance):
    cx, cy = config.center
    return (math.atan2(y - cy, x - cx) + math.pi) / (2 * math.pi)


def _wave(config, x, y, distance):
    phase = config.seed * 10
    return abs(math.sin((x / 50 + phase) * math.pi) * math.cos((y / 50 + phase) * math.pi))


OPACITY_PATTERNS: Dict[str, OpacityFn] = {
    "uniform": _uniform,
    "linear": _linear,
    "radial": _radial,
    "angular": _angular,
    "wave": _wave,
}


# ---------------------------- Pattern generator ----------------------------

@dataclass(frozen=True)
class ShapeDescriptor:
    x: float
    y: float
    size: float
    opacity: float  # always within [0.1, 1.0]


def grid_axis(length: float, spacing: float) -> List[float]:
    """Grid coordinates spacing, 2*spacing, ... strictly inside ``length``."""
    coords = []
    k = 1
    while k * spacing < length:
        coords.append(k * spacing)
        k += 1
    return coords


def layout_shapes(config: PatternConfig, rand: Callable[[], float]) -> List[ShapeDescriptor]:
    """Lay out one shape per grid cell, drawing random numbers from ``rand``.

    Per cell the opacity draw (only when ``randomize_opacity`` is on) comes
    before the size-jitter draw, which is always taken. Keeping that order
    fixed is what makes a seed reproduce the same pattern.
    """
    cx, cy = config.center
    max_distance = config.max_distance
    opacity_fn = OPACITY_PATTERNS[config.opacity_pattern]
    size_span = config.max_size - config.min_size
    ys = grid_axis(config.canvas_height, config.spacing)

    shapes = []
    for x in grid_axis(config.canvas_width, config.spacing):
        for y in ys:
            distance = math.hypot(x - cx, y - cy)
            opacity = config.base_opacity * opacity_fn(config, x, y, distance)
            if config.randomize_opacity:
                opacity *= 0.5 + rand() * 0.5

            # max_distance is the half-diagonal, so size_ratio stays in [0, 1]
            size_ratio = 1 - distance / max_distance
            size = config.min_size + (size_ratio * size_span + rand() * size_span * 0.2)

            shapes.append(ShapeDescriptor(x=x, y=y, size=size, opacity=clamp(opacity, 0.1, 1.0)))
    return shapes


@functools.lru_cache(maxsize=32)
def generate(config: PatternConfig) -> Tuple[ShapeDescriptor, ...]:
    """Generate the pattern for ``config``. Pure; cached on the config value."""
    shapes = tuple(layout_shapes(config, Mulberry32(config.seed)))
    logger.debug("Generated %d %s for seed %r", len(shapes), config.shape_type, config.seed)
    return shapes


# ---------------------------- Shape geometry -------------------------------

# A primitive is a plain dict, like:
# - dict(kind='circle', cx=.., cy=.., r=..)
# - dict(kind='rect', x=.., y=.., w=.., h=..)
# - dict(kind='polygon', points=[(x, y), ...])
# - dict(kind='line', start=(x, y), end=(x, y), width=..)
# - dict(kind='group', children=[...])
# Top-level primitives also carry opacity, center and rotation (degrees).
Primitive = dict


def _dot(shape: ShapeDescriptor) -> Primitive:
    return {"kind": "circle", "cx": shape.x, "cy": shape.y, "r": shape.size / 2}


def _square(shape):
    half = shape.size / 2
    return {"kind": "rect", "x": shape.x - half, "y": shape.y - half, "w": shape.size, "h": shape.size}


def _triangle(shape):
    """Equilateral triangle whose bounding box is centered on the cell."""
    h = shape.size * math.sqrt(3) / 2
    half = shape.size / 2
    return {"kind": "polygon", "points": [
        (shape.x, shape.y - h/2),
        (shape.x - half, shape.y + h/2),
        (shape.x + half, shape.y + h/2),
    ]}


def _hline(shape):
    half = shape.size / 2
    return {"kind": "line", "start": (shape.x - half, shape.y), "end": (shape.x + half, shape.y),
            "width": shape.size / 4}


def _vline(shape):
    half = shape.size / 2
    return {"kind": "line", "start": (shape.x, shape.y - half), "end": (shape.x, shape.y + half),
            "width": shape.size / 4}


def _plus(shape):
    return {"kind": "group", "children": [_hline(shape), _vline(shape)]}


SHAPES: Dict[str, Callable[[ShapeDescriptor], Primitive]] = {
    "dots": _dot,
    "squares": _square,
    "triangles": _triangle,
    "lines": _hline,
    "plus": _plus,
}


def shape_primitive(shape: ShapeDescriptor, shape_type: str, rotation: float = 0.0) -> Primitive:
    """Resolve a descriptor into a drawable primitive for ``shape_type``."""
    make = SHAPES.get(shape_type)
    if make is None:
        raise ValueError(f"Unknown shape type: {shape_type!r}. Choose from {list(SHAPES)}")
    prim = make(shape)
    prim["opacity"] = shape.opacity
    prim["center"] = (shape.x, shape.y)
    prim["rotation"] = normalize_degrees(rotation)
    return prim


def shape_primitives(config: PatternConfig) -> List[Primitive]:
    return [shape_primitive(s, config.shape_type, config.rotation) for s in generate(config)]


def _local_points(prim: Primitive) -> np.ndarray:
    kind = prim["kind"]
    if kind == "circle":
        return np.array([[prim["cx"], prim["cy"]]])
    if kind == "rect":
        x, y, w, h = prim["x"], prim["y"], prim["w"], prim["h"]
        return np.array([[x, y], [x + w, y], [x + w, y + h], [x, y + h]])
    if kind == "polygon":
        return np.array(prim["points"], dtype=float)
    if kind == "line":
        return np.array([prim["start"], prim["end"]], dtype=float)
    raise ValueError(f"Unknown primitive kind: {kind!r}")


def primitive_points(prim: Primitive, center=None, rotation: float = 0.0) -> np.ndarray:
    """Absolute key points of a primitive after its rotation, as an (N, 2) array.

    Circles resolve to their center, rects to their four corners, polygons to
    their vertices, lines to their end points and groups to their children's
    points stacked in order.
    """
    center = prim.get("center", center)
    rotation = prim.get("rotation", rotation)
    if prim["kind"] == "group":
        return np.vstack([primitive_points(c, center, rotation) for c in prim["children"]])
    pts = _local_points(prim)
    if not rotation or center is None:
        return pts
    return rotate_points(pts, math.radians(rotation), origin=center)


# ---------------------------- SVG rendering --------------------------------

def _svg_element(dwg: svgwrite.Drawing, prim: Primitive, color: str):
    kind = prim["kind"]
    if kind == "circle":
        return dwg.circle(center=(prim["cx"], prim["cy"]), r=prim["r"], fill=color)
    if kind == "rect":
        return dwg.rect(insert=(prim["x"], prim["y"]), size=(prim["w"], prim["h"]), fill=color)
    if kind == "polygon":
        return dwg.polygon(points=prim["points"], fill=color)
    if kind == "line":
        return dwg.line(start=prim["start"], end=prim["end"], stroke=color, stroke_width=prim["width"])
    if kind == "group":
        g = dwg.g()
        for child in prim["children"]:
            g.add(_svg_element(dwg, child, color))
        return g
    raise ValueError(f"Unknown primitive kind: {kind!r}")


def build_svg(config: PatternConfig, filename: str = DEFAULT_OUT) -> svgwrite.Drawing:
    """Build the SVG document: a full-canvas background, then shapes in order."""
    dwg = svgwrite.Drawing(filename, size=(config.canvas_width, config.canvas_height))
    dwg.add(dwg.rect(insert=(0, 0), size=("100%", "100%"), fill=config.background_color))
    for prim in shape_primitives(config):
        el = _svg_element(dwg, prim, config.shape_color)
        el["opacity"] = prim["opacity"]
        if prim["rotation"]:
            el.rotate(prim["rotation"], center=prim["center"])
        dwg.add(el)
    return dwg


def render_svg(config: PatternConfig) -> str:
    return build_svg(config).tostring()


def export_svg(config: PatternConfig, path: str = DEFAULT_OUT) -> str:
    """Write the pattern as a standalone SVG file. Returns the path."""
    dwg = build_svg(config, filename=path)
    dwg.save()
    logger.info("Wrote SVG pattern to %s", path)
    return path


# ---------------------------- Raster rendering -----------------------------

def _draw_mask_shape(draw: ImageDraw.ImageDraw, prim: Primitive, pts: np.ndarray,
                     scale: float, value: int) -> None:
    """Draw one non-group primitive into an 'L' mask. ``pts`` are mask-local pixels."""
    kind = prim["kind"]
    if kind == "circle":
        (cx, cy), r = pts[0], prim["r"] * scale
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=value)
    elif kind in ("rect", "polygon"):
        draw.polygon([tuple(p) for p in pts], fill=value)
    elif kind == "line":
        draw.line([tuple(p) for p in pts], fill=value, width=max(1, int(round(prim["width"] * scale))))
    else:
        raise ValueError(f"Unknown primitive kind: {kind!r}")


def render_png(config: PatternConfig, scale: float = 1.0) -> Image.Image:
    """Rasterise the pattern to an RGB image ``scale`` times the canvas size.

    Each shape is drawn into a small 'L' mask the size of its bounding box,
    with the mask value carrying the opacity, then the shape color is pasted
    through that mask. Group members share one mask, so a plus sign gets a
    single opacity like an SVG group does.
    """
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    W = max(1, int(round(config.canvas_width * scale)))
    H = max(1, int(round(config.canvas_height * scale)))
    canvas = Image.new("RGB", (W, H), color=hex_to_rgb(config.background_color))
    color = hex_to_rgb(config.shape_color)

    for shape, prim in zip(generate(config), shape_primitives(config)):
        parts = prim["children"] if prim["kind"] == "group" else [prim]
        part_pts = [primitive_points(p, prim["center"], prim["rotation"]) * scale for p in parts]

        # bounding box, padded by the shape size to cover radii and stroke widths
        allpts = np.vstack(part_pts)
        pad = shape.size * scale + 2
        x0 = max(0, int(math.floor(allpts[:, 0].min() - pad)))
        y0 = max(0, int(math.floor(allpts[:, 1].min() - pad)))
        x1 = min(W, int(math.ceil(allpts[:, 0].max() + pad)))
        y1 = min(H, int(math.ceil(allpts[:, 1].max() + pad)))
        if x1 <= x0 or y1 <= y0:
            continue

        mask = Image.new("L", (x1 - x0, y1 - y0), 0)
        d = ImageDraw.Draw(mask)
        value = int(round(255 * prim["opacity"]))
        for part, pts in zip(parts, part_pts):
            _draw_mask_shape(d, part, pts - (x0, y0), scale, value)
        canvas.paste(color, (x0, y0, x1, y1), mask)
    return canvas


def export_png(config: PatternConfig, path: str, scale: float = 1.0) -> str:
    """Write a PNG preview of the pattern. Returns the path."""
    img = render_png(config, scale=scale)
    img.save(path, format="PNG", optimize=True)
    logger.info("Wrote PNG preview (%dx%d) to %s", img.width, img.height, path)
    return path


# ---------------------------- CLI -------------------------------------------

def parse_size(s: str) -> Tuple[int, int]:
    if "x" not in s.lower():
        raise argparse.ArgumentTypeError("Size must be like 400x400")
    a, b = s.lower().split("x")
    return (int(a), int(b))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Generate grid-based vector patterns as SVG (or PNG)")
    ap.add_argument("--out", default=DEFAULT_OUT, help="Output path; .svg or .png")
    ap.add_argument("--config", default=None, help="JSON file with PatternConfig fields; flags override it")
    ap.add_argument("--size", type=parse_size, default=None, help="WIDTHxHEIGHT (default 400x400)")
    ap.add_argument("--shape", dest="shape_type", choices=SHAPE_TYPES, default=None)
    ap.add_argument("--shape-color", default=None, help="Shape color hex (default #ffffff)")
    ap.add_argument("--bg", dest="background_color", default=None, help="Background color hex (default #1a1a1a)")
    ap.add_argument("--min-size", type=float, default=None)
    ap.add_argument("--max-size", type=float, default=None)
    ap.add_argument("--spacing", type=float, default=None, help="Grid step in pixels")
    ap.add_argument("--opacity-pattern", choices=OPACITY_PATTERN_NAMES, default=None)
    ap.add_argument("--base-opacity", type=float, default=None, help="0..1")
    ap.add_argument("--randomize-opacity", action="store_true", default=None)
    ap.add_argument("--rotation", type=float, default=None, help="Degrees, applied to every shape")
    ap.add_argument("--seed", type=float, default=None, help="Defaults to a fresh random fraction")
    ap.add_argument("--scale", type=float, default=1.0, help="PNG only: pixels per canvas unit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        values = load_config_data(args.config) if args.config else {}
    except (OSError, json.JSONDecodeError) as e:
        raise SystemExit(f"Could not read config {args.config!r}: {e}") from e
    except ValueError as e:
        raise SystemExit(str(e)) from e

    for name in ("shape_type", "shape_color", "background_color", "min_size", "max_size",
                 "spacing", "opacity_pattern", "base_opacity", "randomize_opacity",
                 "rotation", "seed"):
        if getattr(args, name) is not None:
            values[name] = getattr(args, name)
    if args.size is not None:
        values["canvas_width"], values["canvas_height"] = args.size
    # like the "Randomize Seed" button: a fresh fraction unless one was given
    values.setdefault("seed", random.random())

    try:
        config = PatternConfig(**values)
    except (TypeError, ValueError) as e:
        raise SystemExit(f"Invalid pattern config: {e}") from e

    out = args.out
    suffix = out.lower().rsplit(".", 1)[-1] if "." in out else ""
    if suffix == "svg":
        export_svg(config, out)
    elif suffix == "png":
        if args.scale <= 0:
            raise SystemExit(f"--scale must be positive, got {args.scale}")
        export_png(config, out, scale=args.scale)
    else:
        raise SystemExit(f"--out must end in .svg or .png, got {out!r}")
    print(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
