import math
import time
import sys

# pyglet imports
import pyglet

# local module imports
import config
import logutil
import server_connection
from local_cache import LocalCache
from sync_client import SyncClient, MutationClient
from visuals import MeshVisuals


class Observer(object):
    '''
    Stand-in for the local player: walks a circle about the origin and drops a
    brick under itself every `place_every` seconds once bound to the world.
    '''
    def __init__(self, radius=20.0, speed=0.2, place_every=2.0):
        self.radius = radius
        self.speed = speed
        self.place_every = place_every
        self.angle = 0.0
        self.position = (radius, 0.0, 0.0)
        self.world = None
        self._since_place = 0.0

    def __call__(self):
        return self.position

    def set_local_world(self, world):
        self.world = world

    def update(self, dt):
        self.angle += self.speed * dt
        self.position = (self.radius * math.cos(self.angle), 0.0, self.radius * math.sin(self.angle))
        if self.world is None:
            return
        self._since_place += dt
        if self._since_place >= self.place_every:
            self._since_place = 0.0
            x, _, z = self.position
            self.world.place_block(x, z)


def main():
    if len(sys.argv)>1:
        arg = sys.argv[1]
        if ':' in arg:
            host, port = arg.split(':', 1)
            config.SERVER_IP = host
            try:
                config.SERVER_PORT = int(port)
            except ValueError:
                pass
        else:
            config.SERVER_IP = arg
        logutil.log("MAIN", f"Using server IP address {config.SERVER_IP}:{config.SERVER_PORT}")
    conn = server_connection.connect()
    visuals = MeshVisuals()
    cache = LocalCache(visuals)
    observer = Observer()
    mutations = MutationClient(conn, cache)
    sync = SyncClient(conn, observer, cache,
                      on_bind=lambda client: observer.set_local_world(mutations))
    pyglet.clock.schedule_interval(observer.update, 1.0 / config.TICKS_PER_SEC)
    pyglet.clock.schedule_interval(conn.poll, 1.0 / config.TICKS_PER_SEC)
    sync.start()
    frame = 0
    try:
        while conn.connected:
            logutil.set_frame(frame)
            pyglet.clock.tick()
            frame += 1
            if frame % config.TICKS_PER_SEC == 0:
                logutil.log("MAIN", f"cached={len(cache)} live_visuals={len(visuals.live)} "
                                    f"inserted={cache.n_inserted} evicted={cache.n_evicted} "
                                    f"requests={sync.n_requests} responses={sync.n_responses}")
            time.sleep(1.0 / config.TICKS_PER_SEC)
    except KeyboardInterrupt:
        logutil.log("MAIN", "received keyboard interrupt", level="WARN")
    finally:
        sync.stop()
        conn.close()


if __name__ == '__main__':
    main()
