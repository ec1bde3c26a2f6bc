'''
messages.py -- the level sync protocol spoken between client and server

Every frame on the wire is `[kind, payload]` where payload is the list returned
by the message's `pack()`.

    level_request(position, radius)     client -> server
        send me the region blocks relevant near `position`
    level_response(region)              server -> client
        the current copy of a region block
    level_update(x, z)                  client -> server
        add content at ground plane coordinate (x, z)
'''

import math

from region import RegionBlock

LEVEL_REQUEST = 'level_request'
LEVEL_RESPONSE = 'level_response'
LEVEL_UPDATE = 'level_update'

MESSAGE_KINDS = (LEVEL_REQUEST, LEVEL_RESPONSE, LEVEL_UPDATE)


class LevelSyncRequest(object):
    kind = LEVEL_REQUEST

    def __init__(self, position, radius):
        self.position = tuple(float(c) for c in position)
        self.radius = float(radius)

    def __repr__(self):
        return f"LevelSyncRequest({self.position}, {self.radius})"

    def pack(self):
        return [self.position, self.radius]

    @classmethod
    def unpack(cls, data):
        try:
            position, radius = data
            request = cls(position, radius)
        except (TypeError, ValueError):
            raise ValueError(f"bad level request payload {data!r}")
        if len(request.position) != 3 or not all(math.isfinite(c) for c in request.position):
            raise ValueError(f"bad level request position {request.position}")
        if not (math.isfinite(request.radius) and request.radius > 0):
            raise ValueError(f"level request radius must be positive, got {request.radius}")
        return request


class LevelSyncResponse(object):
    kind = LEVEL_RESPONSE

    def __init__(self, region):
        self.region = region

    def __repr__(self):
        return f"LevelSyncResponse({self.region!r})"

    def pack(self):
        return [self.region.pack()]

    @classmethod
    def unpack(cls, data):
        try:
            (region_data,) = data
        except (TypeError, ValueError):
            raise ValueError(f"bad level response payload {data!r}")
        return cls(RegionBlock.unpack(region_data))


class BlockMutation(object):
    kind = LEVEL_UPDATE

    def __init__(self, x, z):
        self.x = float(x)
        self.z = float(z)

    def __repr__(self):
        return f"BlockMutation({self.x}, {self.z})"

    def pack(self):
        return [self.x, self.z]

    @classmethod
    def unpack(cls, data):
        try:
            x, z = data
            return cls(x, z)
        except (TypeError, ValueError):
            raise ValueError(f"bad level update payload {data!r}")
