import os
import sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import config
from region import RegionBlock, RegionWorld


def test_contains_is_half_open():
    region = RegionBlock(0, 0, size=10, height=4)
    assert region.contains(0, 0)
    assert region.contains(9.99, 9.99)
    assert not region.contains(10, 5)
    assert not region.contains(5, -0.01)
    assert RegionBlock(10, 0, size=10, height=4).contains(10, 5)


def test_contains_with_margin():
    region = RegionBlock(10, 0, size=10, height=4)
    assert region.contains(0, 0, 15)
    assert region.contains(-5, 0, 15)
    assert not region.contains(-5.5, 0, 15)
    assert not RegionBlock(20, 0, size=10, height=4).contains(0, 0, 15)


def test_add_brick_stacks_and_bumps_version():
    region = RegionBlock(10, 20, size=10, height=3)
    assert region.add_brick(12.5, 21.2) == (2, 0, 1)
    assert region.add_brick(12.9, 21.9) == (2, 1, 1)
    assert region.version == 3
    assert region.bricks[2, 1, 1] == config.BRICK
    assert region.position() == (10, 20)


def test_add_brick_rejects_outside_and_full_column():
    region = RegionBlock(0, 0, size=4, height=2)
    with pytest.raises(ValueError):
        region.add_brick(4, 0)
    region.add_brick(1, 1)
    region.add_brick(1, 1)
    with pytest.raises(ValueError):
        region.add_brick(1, 1)
    assert region.version == 3


def test_place_blocks_visits_every_brick():
    region = RegionBlock(0, 0, size=4, height=4)
    region.bricks[0, 0, 0] = 1
    region.bricks[3, 2, 1] = 2

    class _Sink:
        def __init__(self):
            self.seen = []

        def add_brick(self, kind, pos):
            self.seen.append((kind, pos))

    sink = _Sink()
    assert region.place_blocks(7, sink) == 2
    assert sorted(sink.seen) == [(7, (0, 0, 0)), (7, (3, 2, 1))]


def test_pack_copies_bricks():
    region = RegionBlock(0, 0, size=4, height=4, version=5)
    packed = region.pack()
    region.add_brick(0, 0)
    copy = RegionBlock.unpack(packed)
    assert copy.version == 5
    assert not copy.bricks.any()
    assert copy.height == 4


def test_unpack_rejects_bad_shape():
    with pytest.raises(ValueError):
        RegionBlock.unpack([0, 0, 4, 1, np.zeros((3, 4, 4), dtype="u2")])
    with pytest.raises(ValueError):
        RegionBlock.unpack([0, 0, 4])


def test_world_generates_ground_and_reuses_regions():
    world = RegionWorld(size=10, height=8, ground=2)
    region = world.region_at(-3, 14)
    assert region.position() == (-10, 10)
    assert world.region_at(-9.5, 19.9) is region
    assert int(np.count_nonzero(region.bricks)) == 10 * 10 * 2
    assert len(world) == 1


def test_regions_near_matches_inflated_containment():
    world = RegionWorld(size=10, height=4)
    regions = world.regions_near(5, 5, 15)
    origins = sorted(r.position() for r in regions)
    expected = sorted((x, z) for x in (-10, 0, 10, 20) for z in (-10, 0, 10, 20))
    assert origins == expected
    assert all(r.contains(5, 5, 15) for r in regions)
    assert len(world) == 16
