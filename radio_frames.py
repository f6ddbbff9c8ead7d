import struct
from xbmq_defines import *

# Frame types
RADIO_FRAME_TYPES = range(1, 7)

DATA, IO_SAMPLE, AT_REQUEST, AT_RESPONSE, \
    DISCOVERY_REQUEST, DISCOVERY_RESPONSE = RADIO_FRAME_TYPES

FRAME_TYPE_NAMES = {DATA: "DATA", IO_SAMPLE: "IO_SAMPLE",
                    AT_REQUEST: "AT_REQUEST", AT_RESPONSE: "AT_RESPONSE",
                    DISCOVERY_REQUEST: "DISCOVERY_REQUEST",
                    DISCOVERY_RESPONSE: "DISCOVERY_RESPONSE"}

RADIO_HEADER_LEN = 1

# AT command status codes
RADIO_AT_OK = 0x00
RADIO_AT_ERROR = 0x01
RADIO_AT_INVALID_COMMAND = 0x02
RADIO_AT_INVALID_PARAMETER = 0x03

AT_STATUS_NAMES = {RADIO_AT_OK: "ok", RADIO_AT_ERROR: "error",
                   RADIO_AT_INVALID_COMMAND: "invalid_command",
                   RADIO_AT_INVALID_PARAMETER: "invalid_parameter"}

# IO lines below this are digital, the next 16 are analog
RADIO_ANALOG_BASE = 0x10


def line_name(line: int):
    if line < RADIO_ANALOG_BASE:
        return 'D{}'.format(line)
    return 'A{}'.format(line - RADIO_ANALOG_BASE)


def address_to_bytes(address: str):
    raw = bytes.fromhex(address)
    if len(raw) != RADIO_ADDR_LEN:
        raise ValueError('Radio address {} is not {} bytes.'.format(address, RADIO_ADDR_LEN))
    return raw


def address_from_bytes(raw: bytes):
    return raw.hex().upper()


# each frame must implement a pack() that returns a filled buffer
# including the type byte, and an unpack() that fills the instance
# attributes from whatever follows the type byte
class RadioFrame:
    frame_type = 0

    def pack(self):
        return b''

    def unpack(self, buffer):
        return False

    def header(self):
        return struct.pack("B", self.frame_type)

    # whole frames only, the radio never splits one
    def checked(self, msg):
        if len(msg) > RADIO_MAX_FRAME_LEN:
            raise ValueError('{} frame of {} bytes is too long, max is {}.'.format(
                FRAME_TYPE_NAMES.get(self.frame_type), len(msg), RADIO_MAX_FRAME_LEN))
        return msg

    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __str__(self):
        return '{} {}'.format(FRAME_TYPE_NAMES.get(self.frame_type), self.__dict__)


class RadioFrameData(RadioFrame):
    frame_type = DATA

    def __init__(self, data=b''):
        self.data = data

    def pack(self):
        return self.checked(self.header() + self.data)

    def unpack(self, buffer):
        self.data = bytes(buffer)
        return True


class RadioFrameSample(RadioFrame):
    frame_type = IO_SAMPLE

    def __init__(self, samples=None):
        # line number -> value
        self.samples = samples if samples else {}

    def pack(self):
        msg = self.header()
        for line, value in sorted(self.samples.items()):
            msg += struct.pack(">BH", line, value)
        return self.checked(msg)

    def unpack(self, buffer):
        if len(buffer) % 3:
            return False

        self.samples = {}
        for line, value in struct.iter_unpack(">BH", buffer):
            self.samples[line] = value
        return True


class RadioFrameAtRequest(RadioFrame):
    frame_type = AT_REQUEST

    def __init__(self, command=b'', value=b''):
        self.frame_id = 0
        self.command = command
        self.value = value

    def pack(self):
        msg = self.header()
        msg += struct.pack(">B2s{}s".format(len(self.value)), self.frame_id,
                           self.command, self.value)
        return self.checked(msg)

    def unpack(self, buffer):
        fmt = ">B2s{}s".format(len(buffer) - (1 + 2))
        try:
            self.frame_id, self.command, self.value = struct.unpack(fmt, buffer)
            return True
        except struct.error:
            return False


class RadioFrameAtResponse(RadioFrame):
    frame_type = AT_RESPONSE

    def __init__(self, command=b'', status=RADIO_AT_OK, value=b''):
        self.frame_id = 0
        self.command = command
        self.status = status
        self.value = value

    def pack(self):
        msg = self.header()
        msg += struct.pack(">B2sB{}s".format(len(self.value)), self.frame_id,
                           self.command, self.status, self.value)
        return self.checked(msg)

    def unpack(self, buffer):
        fmt = ">B2sB{}s".format(len(buffer) - (1 + 2 + 1))
        try:
            self.frame_id, self.command, self.status, self.value = struct.unpack(fmt, buffer)
            return True
        except struct.error:
            return False


class RadioFrameDiscoveryRequest(RadioFrame):
    frame_type = DISCOVERY_REQUEST

    def __init__(self):
        self.frame_id = 0

    def pack(self):
        return self.header() + struct.pack("B", self.frame_id)

    def unpack(self, buffer):
        try:
            self.frame_id = struct.unpack("B", buffer)[0]
            return True
        except struct.error:
            return False


class RadioFrameDiscoveryResponse(RadioFrame):
    frame_type = DISCOVERY_RESPONSE

    def __init__(self, node_id=b''):
        self.frame_id = 0
        self.node_id = node_id

    def pack(self):
        msg = self.header()
        msg += struct.pack(">B{}s".format(len(self.node_id)), self.frame_id, self.node_id)
        return self.checked(msg)

    def unpack(self, buffer):
        fmt = ">B{}s".format(len(buffer) - 1)
        try:
            self.frame_id, self.node_id = struct.unpack(fmt, buffer)
            return True
        except struct.error:
            return False


FRAME_CLASSES = {cls.frame_type: cls for cls in
                 (RadioFrameData, RadioFrameSample, RadioFrameAtRequest,
                  RadioFrameAtResponse, RadioFrameDiscoveryRequest,
                  RadioFrameDiscoveryResponse)}


# decode a whole frame, None if the type is unknown or the body is bad
def parse_frame(buffer):
    if len(buffer) < RADIO_HEADER_LEN:
        return None

    cls = FRAME_CLASSES.get(buffer[0])
    if cls is None:
        return None

    frame = cls()
    if not frame.unpack(buffer[RADIO_HEADER_LEN:]):
        return None
    return frame
