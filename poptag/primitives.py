"""
Drawing primitives produced by the layout engine.

Coordinates are page units (points on a 595 x 842 page). Every primitive
carries a role tag so tests and tools can find the parts of a label
without depending on draw order.
"""

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

from PIL import Image

from .models import ItemTransform
from .text_metrics import FontSpec


@dataclass
class LinearGradient:
    """Left to right two-stop gradient across a rectangle."""
    start_color: str
    end_color: str


@dataclass
class Shadow:
    color: str = "#0f172a"
    opacity: float = 0.15
    blur: float = 6.0
    offset_x: float = 0.0
    offset_y: float = 2.0


@dataclass
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    radius: float = 0.0
    gradient: Optional[LinearGradient] = None
    shadow: Optional[Shadow] = None
    role: str = ""


@dataclass
class Text:
    """A text run, or a wrapped block when more than one line is given.

    (x, y) is the anchor point; anchor_x is left/center/right and anchor_y
    is top/center.
    """
    content: str
    x: float
    y: float
    font: FontSpec
    fill: str = "#000000"
    anchor_x: str = "left"
    anchor_y: str = "top"
    lines: List[str] = field(default_factory=list)
    role: str = ""

    def __post_init__(self):
        if not self.lines:
            self.lines = [self.content]


@dataclass
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str = "#000000"
    stroke_width: float = 1.0
    role: str = ""


@dataclass
class EmbeddedImage:
    image: Image.Image
    x: float
    y: float
    width: float
    height: float
    role: str = ""


Primitive = Union[Rect, Text, Line, EmbeddedImage, "Group"]


@dataclass
class Group:
    """An ordered list of primitives sharing one origin and transform."""
    children: List[Primitive] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    role: str = ""
    transform: Optional[ItemTransform] = None

    def add(self, primitive: Primitive) -> Primitive:
        self.children.append(primitive)
        return primitive

    def walk(self) -> Iterator[Primitive]:
        """Depth-first iteration over every primitive, groups included."""
        for child in self.children:
            yield child
            if isinstance(child, Group):
                yield from child.walk()

    def find(self, role: str) -> List[Primitive]:
        return [primitive for primitive in self.walk() if primitive.role == role]

    def texts(self) -> List[str]:
        """Contents of all text runs, in draw order."""
        return [primitive.content for primitive in self.walk() if isinstance(primitive, Text)]

BARCODE_SLOTS = 35
BARCODE_HEIGHT = 40


def barcode_placeholder(code: str, x: float, y: float, width: float,
                        height: float = BARCODE_HEIGHT) -> Group:
    """Decorative bar pattern for a barcode; not scannable.

    Bars are seeded from the code, so the same product always draws the same
    pattern.
    """
    rng = random.Random(code or "0")
    bar_width = width / 40 * 0.8
    slot = width / 40
    group = Group(x=x, y=y, width=width, height=height, role="barcode-placeholder")
    for index in range(BARCODE_SLOTS):
        if rng.random() > 0.4:
            group.add(Rect(x + index * slot, y, bar_width, height, fill="#000000", role="barcode-bar"))
    return group
