counter = 0

class Peer(object):
    def __init__(self, conn):
        global counter
        self.conn = conn
        self.id = counter
        counter+=1
        self.comms_queue = []

    def __repr__(self):
        return f"Peer({self.id})"
