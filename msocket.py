import multiprocessing.connection

import config


class Listener(multiprocessing.connection.Listener):
    def __init__(self, ip, port):
        multiprocessing.connection.Listener.__init__(self, address = (ip, port), authkey = config.SERVER_AUTHKEY)

    def fileno(self):
        return self._listener._socket.fileno()


def Client(ip, port):
    return multiprocessing.connection.Client(address = (ip, port), authkey = config.SERVER_AUTHKEY)
