'''
region.py -- region blocks, the versioned chunks of world content that the server
owns and streams to clients, and the server side store that generates them
'''

import math

import numpy

import config
import logutil


class RegionBlock(object):
    '''
    A square column of bricks covering [origin_x, origin_x + size) by
    [origin_z, origin_z + size) in the ground plane. `version` is bumped every
    time the content changes so clients can discard stale copies.
    '''
    def __init__(self, origin_x, origin_z, size=None, height=None, version=1, bricks=None):
        self.origin_x = origin_x
        self.origin_z = origin_z
        self.size = config.REGION_SIZE if size is None else size
        self.height = config.REGION_HEIGHT if height is None else height
        self.version = version
        if bricks is None:
            bricks = numpy.zeros((self.size, self.height, self.size), dtype='u2')
        self.bricks = bricks

    def __repr__(self):
        return f"RegionBlock({self.origin_x}, {self.origin_z}, size={self.size}, version={self.version})"

    @property
    def extent(self):
        return (self.origin_x, self.origin_z, self.size, self.size)

    def position(self):
        return (self.origin_x, self.origin_z)

    def contains(self, x, z, margin=0.0):
        return (self.origin_x - margin <= x < self.origin_x + self.size + margin
                and self.origin_z - margin <= z < self.origin_z + self.size + margin)

    def local_column(self, x, z):
        ix = int(math.floor(x - self.origin_x))
        iz = int(math.floor(z - self.origin_z))
        return ix, iz

    def add_brick(self, x, z, kind=None):
        """ Stack a brick on top of the column covering world point (x, z).
        Returns the local (x, y, z) of the new brick.
        """
        if not self.contains(x, z):
            raise ValueError(f"({x}, {z}) is outside {self!r}")
        if kind is None:
            kind = config.BRICK
        ix, iz = self.local_column(x, z)
        filled = numpy.nonzero(self.bricks[ix, :, iz])[0]
        iy = int(filled[-1]) + 1 if len(filled) else 0
        if iy >= self.height:
            raise ValueError(f"column ({ix}, {iz}) of {self!r} is full")
        self.bricks[ix, iy, iz] = kind
        self.version += 1
        return (ix, iy, iz)

    def place_blocks(self, kind, visual):
        count = 0
        for ix, iy, iz in numpy.argwhere(self.bricks != 0):
            visual.add_brick(kind, (int(ix), int(iy), int(iz)))
            count += 1
        return count

    def pack(self):
        return [self.origin_x, self.origin_z, self.size, self.version, self.bricks.copy()]

    @classmethod
    def unpack(cls, data):
        try:
            origin_x, origin_z, size, version, bricks = data
        except (TypeError, ValueError):
            raise ValueError(f"bad region payload {data!r}")
        if not isinstance(size, (int, numpy.integer)) or size <= 0:
            raise ValueError(f"region size must be a positive int, got {size!r}")
        try:
            if not (math.isfinite(origin_x) and math.isfinite(origin_z)):
                raise ValueError(f"region origin ({origin_x}, {origin_z}) is not finite")
            raw = numpy.asarray(bricks)
        except (TypeError, OverflowError) as e:
            raise ValueError(f"bad region payload: {e}")
        if raw.dtype.kind not in 'iu':
            raise ValueError(f"region bricks must be integers, got {raw.dtype}")
        if raw.size and (raw.min() < 0 or raw.max() > numpy.iinfo('u2').max):
            raise ValueError("region brick ids out of range")
        bricks = raw.astype('u2', copy=False)
        if bricks.ndim != 3 or bricks.shape[0] != size or bricks.shape[2] != size:
            raise ValueError(f"region brick array has shape {bricks.shape}, expected size {size}")
        return cls(origin_x, origin_z, size=size, height=bricks.shape[1], version=version, bricks=bricks)


class RegionWorld(object):
    '''
    Authoritative copy of the world, held by the server. Regions sit on a grid of
    `size` and are generated on first use.
    '''
    def __init__(self, size=None, height=None, ground=None):
        self.size = config.REGION_SIZE if size is None else size
        self.height = config.REGION_HEIGHT if height is None else height
        self.ground = config.GROUND_HEIGHT if ground is None else ground
        self.regions = {}

    def __len__(self):
        return len(self.regions)

    def regionize(self, x, z):
        return (int(math.floor(x / self.size)) * self.size,
                int(math.floor(z / self.size)) * self.size)

    def _generate(self, key):
        region = RegionBlock(key[0], key[1], size=self.size, height=self.height)
        region.bricks[:, :self.ground, :] = config.BRICK
        logutil.log("SERVER", f"generated region {key}", level="DEBUG")
        return region

    def region_at(self, x, z):
        key = self.regionize(x, z)
        region = self.regions.get(key)
        if region is None:
            region = self._generate(key)
            self.regions[key] = region
        return region

    def regions_near(self, x, z, radius):
        """ All regions whose extent, inflated by `radius`, contains (x, z). """
        x0 = int(math.floor((x - radius) / self.size)) - 1
        x1 = int(math.floor((x + radius) / self.size)) + 1
        z0 = int(math.floor((z - radius) / self.size)) - 1
        z1 = int(math.floor((z + radius) / self.size)) + 1
        result = []
        for gx in range(x0, x1 + 1):
            ox = gx * self.size
            if not ox - radius <= x < ox + self.size + radius:
                continue
            for gz in range(z0, z1 + 1):
                oz = gz * self.size
                if not oz - radius <= z < oz + self.size + radius:
                    continue
                result.append(self.region_at(ox, oz))
        return result

    def add_brick(self, x, z, kind=None):
        return self.region_at(x, z).add_brick(x, z, kind)
