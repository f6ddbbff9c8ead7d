from radio_link import RadioLink
from radio_frames import *
from xbmq_errors import RadioError, RadioTimeoutError
import socket
import threading
import logging

# addresses plus the largest frame, one byte more is read to spot longer ones
RADIO_DATAGRAM_LEN = 2 * RADIO_ADDR_LEN + RADIO_MAX_FRAME_LEN


class RadioPendingRequest:
    def __init__(self, dest, collect=False):
        self.dest = dest
        # discovery keeps every reply until the timeout,
        # everything else completes on the first one
        self.collect = collect
        self.event = threading.Event()
        self.responses = []


class RadioLinkUDP(RadioLink):
    """
    A virtual radio network on top of UDP broadcast, for running a gateway
    and its nodes on one LAN without radio hardware.

    Every datagram is the 8-byte source address, the 8-byte destination
    address and one frame. Datagrams not addressed to us (or broadcast),
    and our own broadcasts looping back, are dropped.
    """

    def __init__(self, port, local_addr: str):
        self.port = port
        self.local = address_to_bytes(local_addr)
        self.broadcast = address_to_bytes(RADIO_BROADCAST_ADDR)
        self.to_addr = ('<broadcast>', port)

        self.sock = None
        self.reader = None
        self.running = False

        self.data_listeners = []
        self.sample_listeners = []

        # requests waiting on a response, by frame id
        self.pending = {}
        self.frame_id = 0
        self.lock = threading.Lock()

    def open(self):
        if self.is_open():
            return

        # Create a UDP socket that can broadcast
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.settimeout(RADIO_POLL_INTERVAL)

        # Bind the socket to the port
        sock.bind(('', self.port))
        self.sock = sock

        self.running = True
        self.reader = threading.Thread(target=self._read_loop, name='radio-udp-reader', daemon=True)
        self.reader.start()
        logging.info('Radio {} open on UDP port {}.'.format(self.get_address(), self.port))

    def close(self):
        if not self.is_open():
            return

        self.running = False
        if self.reader and self.reader is not threading.current_thread():
            self.reader.join()
        self.reader = None

        self.sock.close()
        self.sock = None

        # wake up anyone still waiting on a response
        with self.lock:
            for pending in self.pending.values():
                pending.event.set()
            self.pending.clear()

        logging.info('Radio {} closed.'.format(self.get_address()))

    def is_open(self):
        return self.sock is not None

    def get_address(self):
        return address_from_bytes(self.local)

    def add_data_listener(self, handler):
        self.data_listeners.append(handler)

    def add_sample_listener(self, handler):
        self.sample_listeners.append(handler)

    def write_frame(self, frame: RadioFrame, dest: str):
        if not self.is_open():
            raise RadioError('Radio link is not open.')

        data = self.local + address_to_bytes(dest) + frame.pack()
        self.sock.sendto(data, self.to_addr)
        # from + to + frame
        return len(data)

    def send(self, frame, dest):
        logging.debug('Radio SEND {} to {}'.format(frame, dest))
        self.write_frame(frame, dest)

    def request(self, frame, dest, timeout):
        dest = address_from_bytes(address_to_bytes(dest))
        frame.frame_id = self._next_frame_id()
        pending = RadioPendingRequest(dest)
        with self.lock:
            self.pending[frame.frame_id] = pending

        try:
            logging.debug('Radio REQUEST {} to {}'.format(frame, dest))
            self.write_frame(frame, dest)

            pending.event.wait(timeout)
            if not pending.responses:
                raise RadioTimeoutError('No response from {} in {}s.'.format(dest, timeout))
            return pending.responses[0][1]
        finally:
            with self.lock:
                self.pending.pop(frame.frame_id, None)

    def discover_nodes(self, timeout):
        frame = RadioFrameDiscoveryRequest()
        frame.frame_id = self._next_frame_id()
        pending = RadioPendingRequest(RADIO_BROADCAST_ADDR, collect=True)
        with self.lock:
            self.pending[frame.frame_id] = pending

        try:
            logging.debug('Radio DISCOVERY broadcast, waiting {}s.'.format(timeout))
            self.write_frame(frame, RADIO_BROADCAST_ADDR)

            # only set early if the link closes under us
            pending.event.wait(timeout)
        finally:
            with self.lock:
                self.pending.pop(frame.frame_id, None)

        return [(address, response.node_id.decode(errors='replace'))
                for address, response in pending.responses]

    def _next_frame_id(self):
        # 0 means no response wanted, so ids run 1..255
        with self.lock:
            self.frame_id = self.frame_id % 255 + 1
            return self.frame_id

    def _read_loop(self):
        while self.running:
            try:
                data, _ = self.sock.recvfrom(RADIO_DATAGRAM_LEN + 1)
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logging.error('Radio read failed: {}'.format(e))
                return

            self.handle_datagram(data)

    def handle_datagram(self, data: bytes):
        src = data[:RADIO_ADDR_LEN]
        dest = data[RADIO_ADDR_LEN:2 * RADIO_ADDR_LEN]

        # make sure its for us or a broadcast, and that we didnt send it either
        if len(data) <= 2 * RADIO_ADDR_LEN or src == self.local:
            return
        if dest not in (self.local, self.broadcast):
            return
        if len(data) > RADIO_DATAGRAM_LEN:
            logging.warning('Radio dropped oversized frame of {} bytes from {}'.format(
                len(data) - 2 * RADIO_ADDR_LEN, src.hex()))
            return

        frame = parse_frame(data[2 * RADIO_ADDR_LEN:])
        if frame is None:
            logging.debug('Radio dropped malformed frame from {}'.format(src.hex()))
            return

        address = address_from_bytes(src)
        logging.debug('Radio RECV {} from {}'.format(frame, address))

        if frame.frame_type == DATA:
            for handler in list(self.data_listeners):
                self._notify(handler, address, frame.data)
        elif frame.frame_type == IO_SAMPLE:
            for handler in list(self.sample_listeners):
                self._notify(handler, address, dict(frame.samples))
        elif frame.frame_type in (AT_RESPONSE, DISCOVERY_RESPONSE):
            self._complete(address, frame)

    def _complete(self, address, frame):
        with self.lock:
            pending = self.pending.get(frame.frame_id)
            if pending is None:
                return

            # unicast requests only take a reply from the node we asked
            if not pending.collect and address != pending.dest:
                return

            pending.responses.append((address, frame))
            if not pending.collect:
                pending.event.set()

    @staticmethod
    def _notify(handler, *args):
        # a bad listener must not take the reader thread down with it
        try:
            handler(*args)
        except Exception:
            logging.exception('Radio listener {} failed'.format(handler))
