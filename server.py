# standard library imports
import select
import socket
import sys
import traceback

import msocket
import logutil
import config
from peers import Peer
from messages import LEVEL_REQUEST, LEVEL_RESPONSE, LEVEL_UPDATE, LevelSyncRequest, LevelSyncResponse, BlockMutation
from region import RegionWorld


def get_network_ip():
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    s.connect(('<broadcast>', 0))
    return s.getsockname()[0]


class ServerConnectionHandler(object):
    '''
    Handles the low level connection handling details of the level server
    '''
    def __init__(self, listener=None):
        if listener is None:
            logutil.log("SERVER", f"starting server at {config.SERVER_IP}:{config.SERVER_PORT}")
            listener = msocket.Listener(config.SERVER_IP, config.SERVER_PORT)
        self.listener = listener
        self.peers = []
        self.fn_dict = {}
        self.alive = False

    def register_function(self, name, fn):
        self.fn_dict[name]=fn

    def connections(self):
        return [p.conn for p in self.peers]

    def connections_with_comms(self):
        return [p.conn for p in self.peers if len(p.comms_queue)>0]

    def accept_connection(self):
        conn = self.listener.accept()
        peer = Peer(conn)
        self.peers.append(peer)
        logutil.log("SERVER", f"connected new peer id {peer.id}")
        return peer

    def drop(self, peer):
        logutil.log("SERVER", f"peer {peer.id} disconnected")
        peer.conn.close()
        if peer in self.peers:
            self.peers.remove(peer)

    def receive(self, peer):
        try:
            result = peer.conn.recv()
        except (EOFError, OSError):
            logutil.log("SERVER", f"disconnect EOF for peer {peer.id}", level="WARN")
            self.drop(peer)
            return
        try:
            msg, data = result
        except (TypeError, ValueError):
            logutil.log("SERVER", f"unexpected frame from peer {peer.id}: {result!r}", level="WARN")
            return
        logutil.log("SERVER", f"received {msg} from peer {peer.id}", level="DEBUG")
        if msg == 'quit':
            self.drop(peer)
            return
        fn = self.fn_dict.get(msg)
        if fn is None:
            logutil.log("SERVER", f"unexpected message type {msg!r} from peer {peer.id}", level="WARN")
            return
        try:
            fn(peer, data)
        except Exception:
            logutil.log("SERVER", f"handler {msg} failed\n{traceback.format_exc()}", level="ERROR")

    def serve_once(self, timeout=None):
        if timeout is None:
            timeout = config.SERVER_SELECT_TIMEOUT
        r,w,x = select.select([self.listener] + self.connections(), self.connections_with_comms(), [], timeout)
        for p in list(self.peers):
            if p.conn in r:
                self.receive(p)
        for p in list(self.peers):
            if p.conn in w:
                self.dispatch_top_message(p)
        if self.listener in r:
            self.accept_connection()

    def serve(self):
        self.alive = True
        while self.alive:
            try:
                self.serve_once()
            except KeyboardInterrupt:
                logutil.log("SERVER", "received keyboard interrupt", level="WARN")
                break
        for p in list(self.peers):
            self.drop(p)
        self.listener.close()

    def queue_for_peer(self, peer, message, data):
        peer.comms_queue.append([message, data])

    def dispatch_top_message(self, peer):
        message = peer.comms_queue.pop(0)
        logutil.log("SERVER", f"sending {message[0]} to {peer.id}", level="DEBUG")
        try:
            peer.conn.send(message)
        except (EOFError, OSError):
            logutil.log("SERVER", f"send failed for peer {peer.id}", level="WARN")
            self.drop(peer)


class LevelServer(object):
    '''
    Level server
    holds the authoritative region blocks and answers the sync protocol

    Client Messages
        level_request(position, radius)
            replies with one level_response per region whose extent, inflated
            by `radius` (at most MAX_VIEW_RADIUS), contains `position`; only the
            requesting peer is answered
        level_update(x, z)
            stacks a brick on the column at (x, z), bumping the region version;
            no reply, clients see the change on their next sync
    '''
    def __init__(self, handler=None, world=None):
        self.handler = ServerConnectionHandler() if handler is None else handler
        self.world = RegionWorld() if world is None else world
        self.handler.register_function(LEVEL_REQUEST, self.level_request)
        self.handler.register_function(LEVEL_UPDATE, self.level_update)

    def run(self):
        logutil.log("SERVER", "serving")
        self.handler.serve()
        logutil.log("SERVER", "shutting down")

    def level_request(self, peer, data):
        request = LevelSyncRequest.unpack(data)
        radius = request.radius
        max_radius = config.MAX_VIEW_RADIUS
        if radius > max_radius:
            logutil.log("SERVER", f"clamping radius {radius} from peer {peer.id} to {max_radius}", level="WARN")
            radius = max_radius
        x, _, z = request.position
        regions = self.world.regions_near(x, z, radius)
        for region in regions:
            self.handler.queue_for_peer(peer, LEVEL_RESPONSE, LevelSyncResponse(region).pack())
        return regions

    def level_update(self, peer, data):
        mutation = BlockMutation.unpack(data)
        try:
            pos = self.world.add_brick(mutation.x, mutation.z)
        except ValueError as e:
            logutil.log("SERVER", f"rejected {mutation!r} from peer {peer.id}: {e}", level="WARN")
            return None
        region = self.world.region_at(mutation.x, mutation.z)
        logutil.log("SERVER", f"peer {peer.id} added brick {pos} in {region!r}")
        return region


if __name__ == '__main__':
    config.SERVER_IP = 'localhost'
    if len(sys.argv)>1:
        if sys.argv[1] == 'LAN':
            config.SERVER_IP = get_network_ip()
        elif ':' in sys.argv[1]:
            host, port = sys.argv[1].split(':', 1)
            config.SERVER_IP = host
            try:
                config.SERVER_PORT = int(port)
            except ValueError:
                pass
        else:
            config.SERVER_IP = sys.argv[1]
    LevelServer().run()
