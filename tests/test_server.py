import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import messages
from messages import LevelSyncRequest, LevelSyncResponse, BlockMutation
from peers import Peer
from region import RegionWorld
from server import ServerConnectionHandler, LevelServer


class _FakeConn:
    def __init__(self, frames=()):
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    def recv(self):
        if not self.frames:
            raise EOFError
        return self.frames.pop(0)

    def send(self, frame):
        self.sent.append(frame)

    def close(self):
        self.closed = True


def _server(frames=()):
    handler = ServerConnectionHandler(listener=object())
    server = LevelServer(handler=handler, world=RegionWorld(size=10, height=4))
    peer = Peer(_FakeConn(frames))
    handler.peers.append(peer)
    return server, handler, peer


def test_level_request_answers_requesting_peer_only():
    server, handler, peer = _server()
    other = Peer(_FakeConn())
    handler.peers.append(other)
    server.level_request(peer, LevelSyncRequest((5.0, 0.0, 5.0), 15.0).pack())
    assert len(peer.comms_queue) == 16
    assert other.comms_queue == []
    for kind, payload in peer.comms_queue:
        region = LevelSyncResponse.unpack(payload).region
        assert kind == messages.LEVEL_RESPONSE
        assert region.contains(5.0, 5.0, 15.0)


def test_level_update_bumps_region_version_without_reply():
    server, handler, peer = _server()
    region = server.level_update(peer, BlockMutation(3.0, 4.0).pack())
    assert region.position() == (0, 0)
    assert region.version == 2
    assert region.bricks[3, 1, 4] != 0
    assert peer.comms_queue == []


def test_level_update_on_full_column_is_rejected(capsys):
    server, handler, peer = _server()
    for _ in range(3):
        server.level_update(peer, BlockMutation(1.0, 1.0).pack())
    assert server.level_update(peer, BlockMutation(1.0, 1.0).pack()) is None
    assert "rejected" in capsys.readouterr().out
    assert server.world.region_at(1.0, 1.0).version == 4


def test_receive_dispatches_registered_kinds():
    request = LevelSyncRequest((0.0, 0.0, 0.0), 1.0)
    server, handler, peer = _server([[request.kind, request.pack()]])
    handler.receive(peer)
    assert len(peer.comms_queue) == 4
    handler.dispatch_top_message(peer)
    assert len(peer.conn.sent) == 1
    assert peer.conn.sent[0][0] == messages.LEVEL_RESPONSE


def test_receive_survives_unknown_and_failing_messages(capsys):
    server, handler, peer = _server([
        ["teleport", []],
        [messages.LEVEL_UPDATE, ["not", "numbers"]],
        "garbage",
    ])
    handler.receive(peer)
    handler.receive(peer)
    handler.receive(peer)
    out = capsys.readouterr().out
    assert "unexpected message type 'teleport'" in out
    assert "handler level_update failed" in out
    assert "unexpected frame" in out
    assert peer in handler.peers


def test_quit_and_eof_drop_peer():
    server, handler, peer = _server([["quit", []]])
    handler.receive(peer)
    assert peer not in handler.peers
    assert peer.conn.closed
    server, handler, peer = _server()
    handler.receive(peer)
    assert peer not in handler.peers


def test_level_request_clamps_oversized_radius(capsys):
    server, handler, peer = _server()
    server.level_request(peer, LevelSyncRequest((0.0, 0.0, 0.0), 400.0).pack())
    assert "clamping radius 400.0" in capsys.readouterr().out
    # regions whose extent inflated by MAX_VIEW_RADIUS (64) covers the origin: -70..60 per axis
    assert len(server.world) == 14 * 14
    assert len(peer.comms_queue) == 14 * 14
    for _, payload in peer.comms_queue:
        assert LevelSyncResponse.unpack(payload).region.contains(0.0, 0.0, 64.0)


def test_level_request_with_bad_radius_is_dropped(capsys):
    server, handler, peer = _server([[LevelSyncRequest.kind, [(0.0, 0.0, 0.0), -1.0]]])
    handler.receive(peer)
    assert "handler level_request failed" in capsys.readouterr().out
    assert len(server.world) == 0
    assert peer.comms_queue == []
