import traceback

import msocket
import config
import logutil


class ServerConnection(object):
    '''
    Client end of the link to the level server. Frames are `[kind, payload]`.
    Sending is fire-and-forget; inbound frames are handed to the handler
    registered for their kind whenever `poll` is called.
    '''
    def __init__(self, conn):
        self._conn = conn
        self._handlers = {}
        self.connected = True

    def register_handler(self, kind, fn):
        self._handlers[kind] = fn

    def send_message(self, kind, payload):
        if not self.connected:
            logutil.log("CLIENT", f"not connected, dropping {kind}", level="WARN")
            return False
        try:
            self._conn.send([kind, payload])
        except (EOFError, OSError) as e:
            logutil.log("CLIENT", f"send failed {e}", level="WARN")
            self.connected = False
            return False
        return True

    def poll(self, dt=None, max_messages=None):
        """ Dispatch every frame waiting on the connection. Returns the number
        of frames handled.
        """
        count = 0
        while self.connected and self._conn.poll():
            try:
                result = self._conn.recv()
            except (EOFError, OSError):
                logutil.log("CLIENT", "server returned EOF", level="WARN")
                self.connected = False
                break
            try:
                kind, payload = result
            except (TypeError, ValueError):
                logutil.log("CLIENT", f"recv unexpected payload {result!r}", level="WARN")
                continue
            self.dispatch(kind, payload)
            count += 1
            if max_messages is not None and count >= max_messages:
                break
        return count

    def dispatch(self, kind, payload):
        handler = self._handlers.get(kind)
        if handler is None:
            logutil.log("CLIENT", f"no handler for {kind!r}", level="WARN")
            return
        try:
            handler(kind, payload)
        except Exception:
            logutil.log("CLIENT", f"handler for {kind!r} failed\n{traceback.format_exc()}", level="ERROR")

    def close(self):
        if self.connected:
            try:
                self._conn.send(['quit', []])
            except (EOFError, OSError):
                pass
        self.connected = False
        self._conn.close()


def connect(ip=None, port=None):
    ip = config.SERVER_IP if ip is None else ip
    port = config.SERVER_PORT if port is None else port
    logutil.log("CLIENT", f"connecting to server at {ip}:{port}")
    return ServerConnection(msocket.Client(ip, port))
