'''
visuals.py -- the materialized side of a cached region block

The cache only needs three capabilities from whatever draws the world:

    materialize(kind, position) -> handle
    destroy(handle)
    populate(handle, region)

MeshVisuals fulfils them headlessly by building one cube of vertex data per
brick with numpy, which is enough for a renderer to upload later.
'''

import numpy

import config
import logutil

cb_v = numpy.array([
        [-1,+1,-1, -1,+1,+1, +1,+1,+1, +1,+1,-1],  # top
        [-1,-1,-1, +1,-1,-1, +1,-1,+1, -1,-1,+1],  # bottom
        [-1,-1,-1, -1,-1,+1, -1,+1,+1, -1,+1,-1],  # left
        [+1,-1,+1, +1,-1,-1, +1,+1,-1, +1,+1,+1],  # right
        [-1,-1,+1, +1,-1,+1, +1,+1,+1, -1,+1,+1],  # front
        [+1,-1,-1, -1,-1,-1, -1,+1,-1, +1,+1,-1],  # back
],dtype = numpy.float32)


def cube_v(pos, n):
    return n*cb_v+numpy.tile(pos,4)


class MeshHandle(object):
    def __init__(self, kind, position):
        self.kind = kind
        self.position = numpy.array(position, dtype=numpy.float32)
        self.bricks = []
        self._quads = []
        self.alive = True

    def __repr__(self):
        return f"MeshHandle({self.kind}, {tuple(self.position)}, bricks={len(self.bricks)})"

    def add_brick(self, kind, local_pos):
        center = self.position + numpy.array(local_pos, dtype=numpy.float32) + config.BRICK_HALF_SIZE
        self.bricks.append((kind, tuple(local_pos)))
        self._quads.append(cube_v(center, config.BRICK_HALF_SIZE))

    def clear(self):
        self.bricks = []
        self._quads = []

    def vertices(self):
        if not self._quads:
            return numpy.zeros((0, 3), dtype=numpy.float32)
        return numpy.concatenate(self._quads).reshape(-1, 3)


class MeshVisuals(object):
    '''
    Owns every mesh handle it hands out. `live` lets callers check that each
    handle is destroyed exactly once.
    '''
    def __init__(self):
        self.live = set()
        self.n_materialized = 0
        self.n_destroyed = 0
        self.n_populated = 0

    def materialize(self, kind, position):
        handle = MeshHandle(kind, position)
        self.live.add(handle)
        self.n_materialized += 1
        return handle

    def destroy(self, handle):
        if not handle.alive:
            raise RuntimeError(f"{handle!r} destroyed twice")
        handle.alive = False
        handle.clear()
        self.live.discard(handle)
        self.n_destroyed += 1

    def populate(self, handle, region):
        handle.clear()
        count = region.place_blocks(handle.kind, handle)
        self.n_populated += 1
        logutil.log("CACHE", f"populated {handle!r} from {region!r} bricks={count}", level="DEBUG")
        return count
