#
# conftest.py - Arena Tools: pytest configuration file
# Copyright DeGirum Corp. 2025
#
# Contains common pytest configuration and common test fixtures
#
import sys, os, tempfile, pytest, pathlib

# add current directory to sys.path to debug tests locally without package installation
sys.path.insert(0, os.getcwd())

import arena_tools
import logging
from typing import List, Optional, Sequence


def pytest_addoption(parser):
    """Add custom command line options for pytest"""

    parser.addoption(
        "--loglevel",
        action="store",
        default=None,
        help="Set log level (e.g. DEBUG, INFO, WARNING)",
    )


def pytest_configure(config):
    """Configure pytest with custom options"""

    loglevel = config.getoption("--loglevel")
    if loglevel:
        arena_tools.logger_add_handler(
            level=getattr(logging, loglevel.upper(), logging.ERROR)
        )


@pytest.fixture
def temp_dir():
    """Temporary directory fixture with cleanup"""
    with tempfile.TemporaryDirectory() as directory:
        yield pathlib.Path(directory)


@pytest.fixture(scope="session")
def arena_yaml():
    """Open-field arena with one zone of every type; `center` is declared before its parent"""
    return """
arenas:
  - id: oft_arena
    image: oft.png
    scale: 5.0
    points:
      top_left: [0, 0]
      bottom_right: [100, 100]
      l1: [0, 0]
      l2: [40, 0]
      l3: [40, 100]
      l4: [0, 100]
      object: [80, 80]
    zones:
      - id: center
        name: Center
        type: proportion
        parent_zone: arena
        proportion: [0.25, 0.25, 0.75, 0.75]
      - id: arena
        name: Whole arena
        type: rectangle
        point_names: [top_left, bottom_right]
      - id: left_wall
        name: Left wall
        type: points
        point_names: [l1, l2, l3, l4]
      - id: object
        name: Novel object
        type: circle
        center_point: object
        radius_cm: 2
    metadata:
      paradigm: open_field
"""


@pytest.fixture(scope="session")
def arena(arena_yaml):
    """Parsed open-field arena"""
    return arena_tools.load_arena_configs(arena_yaml, arena_id="oft_arena")


@pytest.fixture(scope="session")
def zones(arena):
    """Resolved open-field arena zones"""
    return arena_tools.build_all_zone_geometries(arena)


@pytest.fixture(scope="session")
def strip_arena():
    """Arena of three adjacent, non-overlapping 10x10 squares `a`, `b`, `c` along the x axis"""
    points = [
        arena_tools.ReferencePoint(name, x, y)
        for name, x, y in [
            ("p0", 0, 0),
            ("p1", 10, 10),
            ("p2", 20, 10),
            ("p3", 30, 10),
            ("q1", 10, 0),
            ("q2", 20, 0),
        ]
    ]
    zones = [
        arena_tools.RectangleZone("a", "Zone A", ("p0", "p1")),
        arena_tools.RectangleZone("b", "Zone B", ("q1", "p2")),
        arena_tools.RectangleZone("c", "Zone C", ("q2", "p3")),
    ]
    return arena_tools.ArenaConfig("strip", points, zones)


# x coordinate of a point in the middle of each strip zone; None means outside all zones
STRIP_X = {"a": 5.0, "b": 15.0, "c": 25.0, None: 50.0}


def make_strip_tracking(
    labels: Sequence[Optional[str]],
    fps: float = 30.0,
    landmark: str = "mouse_center",
    first_frame: int = 0,
    source: Optional[str] = None,
):
    """Build tracking data visiting strip arena zones in the given per-frame order"""
    frames = list(range(first_frame, first_frame + len(labels)))
    x: List[float] = [STRIP_X[label] for label in labels]
    y = [5.0] * len(labels)
    return arena_tools.tracking_data_from_arrays(frames, x, y, fps, landmark, source)


@pytest.fixture
def strip_tracking():
    """Factory fixture building strip arena tracking data from a zone label sequence"""
    return make_strip_tracking
