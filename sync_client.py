'''
sync_client.py -- keeps the local cache in step with the server

SyncClient asks the server for the regions around the observer once per tick
and folds every response into the LocalCache. MutationClient forwards block
placement intents to the server; the resulting change comes back through the
normal sync path with a bumped version.
'''

import pyglet

import config
import logutil
from messages import MESSAGE_KINDS, LEVEL_RESPONSE, LevelSyncRequest, LevelSyncResponse, BlockMutation

IDLE = 'idle'
TRACKING = 'tracking'


class SyncClient(object):
    '''
    Two states: IDLE until the observer provider first returns a position, then
    TRACKING for good. Losing the observer afterwards does not return the client
    to IDLE; ticks simply send nothing while no position is available.

    `observer` is a callable returning the current (x, y, z) or None.
    `connection` must provide `connected`, `send_message(kind, payload)` and
    `register_handler(kind, fn)`.
    '''
    def __init__(self, connection, observer, cache, view_radius=None, on_bind=None):
        self.connection = connection
        self.observer = observer
        self.cache = cache
        self.view_radius = config.VIEW_RADIUS if view_radius is None else float(view_radius)
        if self.view_radius <= 0:
            raise ValueError(f"view radius must be positive, got {self.view_radius}")
        self.on_bind = on_bind
        self.state = IDLE
        self.n_requests = 0
        self.n_responses = 0
        for kind in MESSAGE_KINDS:
            connection.register_handler(kind, self.handle_message)

    def start(self, clock=None):
        if clock is None:
            clock = pyglet.clock
        clock.schedule_interval(self.tick, getattr(config, 'SYNC_INTERVAL', 1.0 / 60))

    def stop(self, clock=None):
        if clock is None:
            clock = pyglet.clock
        clock.unschedule(self.tick)

    def _bind(self):
        if self.observer() is None:
            return
        self.state = TRACKING
        logutil.log("SYNC", "observer bound, tracking", level="INFO")
        if self.on_bind is not None:
            self.on_bind(self)

    def tick(self, dt=None):
        if self.state == IDLE:
            self._bind()
        if self.state != TRACKING or not self.connection.connected:
            return
        position = self.observer()
        if position is None:
            return
        request = LevelSyncRequest(position, self.view_radius)
        self.connection.send_message(request.kind, request.pack())
        self.n_requests += 1
        logutil.log("SYNC", f"sent {request!r}")

    def handle_message(self, kind, payload):
        if kind != LEVEL_RESPONSE:
            logutil.log("SYNC", f"unexpected message type {kind!r}", level="WARN")
            return
        try:
            response = LevelSyncResponse.unpack(payload)
        except ValueError as e:
            logutil.log("SYNC", f"dropping malformed response: {e}", level="ERROR")
            return
        self.n_responses += 1
        logutil.log("SYNC", f"received {response!r}")
        self.cache.reconcile(response.region)
        position = self.observer()
        if position is None:
            logutil.log("SYNC", "no observer position, skipping eviction", level="WARN")
            return
        self.cache.evict(position, self.view_radius)


class MutationClient(object):
    '''
    `apply_local_mutation(block, offset)` is called with the cached block and the
    block-local (x, z) offset when the target is cached. Placing the brick locally
    ahead of the server is left to that callback; by default nothing happens.
    '''
    def __init__(self, connection, cache, apply_local_mutation=None):
        self.connection = connection
        self.cache = cache
        self.apply_local_mutation = apply_local_mutation
        self.n_sent = 0

    def place_block(self, x, z):
        """ Add a new block at the given position. Returns the block-local
        offset, or None when no cached block covers (x, z).
        """
        position = (x, 0.0, z)
        block = self.cache.find_block(position)
        offset = None
        if block is not None:
            offset = (x - block.region.origin_x, z - block.region.origin_z)
            if self.apply_local_mutation is not None:
                self.apply_local_mutation(block, offset)
        else:
            logutil.log("MUTATE", f"no level block at {position}", level="WARN")
        message = BlockMutation(x, z)
        self.connection.send_message(message.kind, message.pack())
        self.n_sent += 1
        return offset
