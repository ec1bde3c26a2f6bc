'''
local_cache.py -- client side cache of the region blocks near the observer

Each cached block pairs the best known copy of a region with the visual handle
built from it. Blocks enter the cache through `reconcile` when the server sends
them, and leave through `evict` once the observer has moved far enough away.
'''

import config
import logutil


class DuplicateBlockError(ValueError):
    pass


class CachedBlock(object):
    def __init__(self, region, visual, anchor):
        self.region = region
        self.visual = visual
        self.anchor = anchor

    def __repr__(self):
        return f"CachedBlock({self.region!r}, anchor={self.anchor})"

    @property
    def version(self):
        return self.region.version


class SpatialIndex(object):
    '''
    Linear scan over the cached blocks. Regions are assumed not to overlap; if
    they do, the first one inserted wins.
    '''
    def __init__(self):
        self.blocks = []

    def __len__(self):
        return len(self.blocks)

    def __iter__(self):
        return iter(self.blocks)

    def find_block(self, position):
        """ Identify the cached block covering `position` (x, y, z), or None. """
        x, z = position[0], position[2]
        for block in self.blocks:
            if block.region.contains(x, z):
                return block
        return None

    def outside_radius(self, position, radius):
        x, z = position[0], position[2]
        return [b for b in self.blocks if not b.region.contains(x, z, radius)]


class LocalCache(object):
    def __init__(self, visuals, kind=None):
        self.visuals = visuals
        self.kind = config.BRICK if kind is None else kind
        self.index = SpatialIndex()
        self.n_inserted = 0
        self.n_updated = 0
        self.n_stale = 0
        self.n_evicted = 0

    def __len__(self):
        return len(self.index)

    def __iter__(self):
        return iter(self.index)

    @property
    def blocks(self):
        return list(self.index.blocks)

    def find_block(self, position):
        return self.index.find_block(position)

    def insert(self, region, position):
        """ Create a cached block for `region` with its visual anchored at
        `position` and add it to the cache. Raises DuplicateBlockError if a
        cached block already covers `position`.
        """
        existing = self.index.find_block(position)
        if existing is not None:
            raise DuplicateBlockError(f"{position} already covered by {existing!r}")
        logutil.log("CACHE", f"new local block {position}")
        visual = self.visuals.materialize(self.kind, position)
        block = CachedBlock(region, visual, position)
        self.index.blocks.append(block)
        self.n_inserted += 1
        return block

    def reconcile(self, incoming):
        """ Merge a region received from the server into the cache. A newer
        version replaces the cached copy and rebuilds its visual; an equal or
        older one is dropped. Returns None for a region that does not cover
        its own anchor.
        """
        x, z = incoming.position()
        if not incoming.contains(x, z):
            logutil.log("CACHE", f"rejecting {incoming!r}, it does not cover its anchor", level="WARN")
            return None
        anchor = (x, 0.0, z)
        block = self.index.find_block(anchor)
        if block is None:
            block = self.insert(incoming, anchor)
            try:
                self.visuals.populate(block.visual, block.region)
            except Exception:
                self.index.blocks.remove(block)
                self.visuals.destroy(block.visual)
                self.n_inserted -= 1
                raise
            return block
        if incoming.version > block.version:
            logutil.log("CACHE", f"update {anchor} version {block.version} -> {incoming.version}")
            visual = self.visuals.materialize(self.kind, block.anchor)
            try:
                self.visuals.populate(visual, incoming)
            except Exception:
                self.visuals.destroy(visual)
                raise
            old_visual = block.visual
            block.region = incoming
            block.visual = visual
            self.visuals.destroy(old_visual)
            self.n_updated += 1
        else:
            logutil.log("CACHE", f"stale {anchor} version {incoming.version} <= {block.version}", level="DEBUG")
            self.n_stale += 1
        return block

    def evict(self, position, radius):
        """ Remove any cached blocks that are outside the visible region. """
        evicted = self.index.outside_radius(position, radius)
        if not evicted:
            return evicted
        gone = set(map(id, evicted))
        self.index.blocks = [b for b in self.index.blocks if id(b) not in gone]
        for block in evicted:
            logutil.log("CACHE", f"dropping block {block.anchor} loaded={len(self.index)}")
            self.visuals.destroy(block.visual)
            block.visual = None
        self.n_evicted += len(evicted)
        return evicted
