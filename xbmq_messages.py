import json
from radio_frames import *

AT_STATUS_TIMEOUT = "timeout"


# MQTT payloads exchanged with the broker. Same convention as the radio
# frames: pack() returns the payload, unpack() fills the attributes and
# returns False if the payload is no good
class XbmqMessage:
    def pack(self):
        return b''

    def unpack(self, payload):
        return False

    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __str__(self):
        return str(self.__dict__)


class XbmqAtRequest(XbmqMessage):
    """
    'NI' queries a parameter, 'NI=value' sets it. Values starting with 0x
    are hex, anything else is sent as ASCII.
    """

    def __init__(self, command=b'', value=b''):
        self.command = command
        self.value = value

    def pack(self):
        if not self.value:
            return self.command
        return self.command + b'=0x' + self.value.hex().upper().encode()

    def unpack(self, payload):
        try:
            text = payload.decode('ascii').strip()
        except UnicodeDecodeError:
            return False

        command, sep, value = text.partition('=')
        if len(command) != 2 or not command.isalnum():
            return False

        if value[:2].lower() == '0x':
            try:
                self.value = bytes.fromhex(value[2:])
            except ValueError:
                return False
        else:
            self.value = value.encode()

        self.command = command.upper().encode()
        return True

    def to_frame(self):
        return RadioFrameAtRequest(self.command, self.value)


class XbmqAtResponse(XbmqMessage):
    def __init__(self, command=b'', status=AT_STATUS_NAMES[RADIO_AT_OK], value=b''):
        self.command = command
        self.status = status
        self.value = value

    @classmethod
    def from_frame(cls, frame: RadioFrameAtResponse):
        status = AT_STATUS_NAMES.get(frame.status, AT_STATUS_NAMES[RADIO_AT_ERROR])
        return cls(frame.command, status, frame.value)

    def pack(self):
        return json.dumps({"command": self.command.decode('ascii', 'replace'),
                           "status": self.status,
                           "value": self.value.hex().upper()}).encode()

    def unpack(self, payload):
        try:
            obj = json.loads(payload)
            self.command = obj["command"].encode('ascii')
            self.status = obj["status"]
            self.value = bytes.fromhex(obj["value"])
            return True
        except (ValueError, KeyError, TypeError, AttributeError):
            return False


class XbmqDiscoveryRequest(XbmqMessage):
    # empty payload means the default discovery time
    def __init__(self, timeout=None):
        self.timeout = timeout

    def pack(self):
        return b'' if self.timeout is None else str(self.timeout).encode()

    def unpack(self, payload):
        try:
            text = payload.decode('ascii').strip()
        except UnicodeDecodeError:
            return False

        if not text:
            self.timeout = None
            return True

        try:
            timeout = float(text)
        except ValueError:
            return False
        if not 0 < timeout <= 60:
            return False

        self.timeout = timeout
        return True


class XbmqDiscoveryResponse(XbmqMessage):
    def __init__(self, nodes=None):
        # list of (address, node identifier)
        self.nodes = nodes if nodes else []

    def pack(self):
        return json.dumps([{"address": address, "node_id": node_id}
                           for address, node_id in self.nodes]).encode()

    def unpack(self, payload):
        try:
            self.nodes = [(node["address"], node["node_id"]) for node in json.loads(payload)]
            return True
        except (ValueError, KeyError, TypeError):
            return False


class XbmqSampleMessage(XbmqMessage):
    def __init__(self, samples=None):
        # line number -> value
        self.samples = samples if samples else {}

    def pack(self):
        named = {line_name(line): value for line, value in self.samples.items()}
        return json.dumps(named, sort_keys=True).encode()

    def unpack(self, payload):
        try:
            named = json.loads(payload)
            samples = {}
            for name, value in named.items():
                base = RADIO_ANALOG_BASE if name[0] == 'A' else 0
                if name[0] not in 'AD':
                    return False
                samples[base + int(name[1:])] = int(value)
        except (ValueError, TypeError, AttributeError, IndexError):
            return False

        self.samples = samples
        return True
