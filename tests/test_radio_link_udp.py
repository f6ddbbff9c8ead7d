"""Tests for the UDP radio link."""

import logging
from unittest.mock import MagicMock

import pytest

from helpers import GATEWAY_ADDR, NODE_ADDR
from radio_frames import *
from radio_link_udp import RadioLinkUDP
from xbmq_errors import RadioError, RadioTimeoutError

LOCAL = bytes.fromhex(GATEWAY_ADDR)
NODE = bytes.fromhex(NODE_ADDR)
OTHER = bytes.fromhex('0013A20040000001')
BROADCAST = bytes.fromhex(RADIO_BROADCAST_ADDR)


@pytest.fixture
def link():
    """A link with a fake socket and no reader thread."""
    link = RadioLinkUDP(20000, GATEWAY_ADDR)
    link.sock = MagicMock()
    return link


def reply_with(link, make_reply):
    """Answer every request the link sends, as the addressed node would."""
    def sendto(data, addr):
        dest = data[RADIO_ADDR_LEN:2 * RADIO_ADDR_LEN]
        request = parse_frame(data[2 * RADIO_ADDR_LEN:])
        for src, frame in make_reply(dest, request):
            frame.frame_id = request.frame_id
            link.handle_datagram(src + LOCAL + frame.pack())
    link.sock.sendto.side_effect = sendto


class TestReceive:
    """Test unsolicited frames."""

    def test_data(self, link):
        listener = MagicMock()
        link.add_data_listener(listener)

        link.handle_datagram(NODE + LOCAL + RadioFrameData(b'hi').pack())
        listener.assert_called_once_with(NODE_ADDR, b'hi')

    def test_broadcast_data(self, link):
        listener = MagicMock()
        link.add_data_listener(listener)

        link.handle_datagram(NODE + BROADCAST + RadioFrameData(b'hi').pack())
        listener.assert_called_once_with(NODE_ADDR, b'hi')

    def test_sample(self, link):
        listener = MagicMock()
        link.add_sample_listener(listener)

        link.handle_datagram(NODE + LOCAL + RadioFrameSample({0: 1}).pack())
        listener.assert_called_once_with(NODE_ADDR, {0: 1})

    @pytest.mark.parametrize('datagram', [
        NODE + OTHER + b'\x01hi',      # for someone else
        LOCAL + BROADCAST + b'\x01hi',  # our own broadcast
        NODE + LOCAL,                   # no frame
        NODE + LOCAL + b'\x02\x00',     # malformed
        NODE[:4],
    ])
    def test_dropped(self, link, datagram):
        listener = MagicMock()
        link.add_data_listener(listener)
        link.add_sample_listener(listener)

        link.handle_datagram(datagram)
        listener.assert_not_called()

    def test_oversized_dropped(self, link, caplog):
        listener = MagicMock()
        link.add_data_listener(listener)

        with caplog.at_level(logging.WARNING):
            link.handle_datagram(NODE + LOCAL + b'\x01' + b'x' * RADIO_MAX_FRAME_LEN)
        listener.assert_not_called()
        assert 'oversized' in caplog.text

    def test_largest_frame_delivered(self, link):
        listener = MagicMock()
        link.add_data_listener(listener)

        data = b'x' * (RADIO_MAX_FRAME_LEN - 1)
        link.handle_datagram(NODE + LOCAL + b'\x01' + data)
        listener.assert_called_once_with(NODE_ADDR, data)

    def test_listener_failure_contained(self, link):
        bad = MagicMock(side_effect=RuntimeError('bad listener'))
        good = MagicMock()
        link.add_data_listener(bad)
        link.add_data_listener(good)

        link.handle_datagram(NODE + LOCAL + RadioFrameData(b'hi').pack())
        good.assert_called_once_with(NODE_ADDR, b'hi')

    def test_unsolicited_response_ignored(self, link):
        response = RadioFrameAtResponse(b'NI')
        response.frame_id = 9
        link.handle_datagram(NODE + LOCAL + response.pack())


class TestSend:
    """Test outgoing frames."""

    def test_datagram(self, link):
        link.send(RadioFrameData(b'on'), NODE_ADDR)
        link.sock.sendto.assert_called_once_with(LOCAL + NODE + b'\x01on', ('<broadcast>', 20000))

    def test_oversized_not_sent(self, link):
        with pytest.raises(ValueError):
            link.send(RadioFrameData(b'x' * RADIO_MAX_FRAME_LEN), NODE_ADDR)
        link.sock.sendto.assert_not_called()

    def test_closed(self):
        with pytest.raises(RadioError):
            RadioLinkUDP(20000, GATEWAY_ADDR).send(RadioFrameData(b'on'), NODE_ADDR)

    def test_bad_address(self, link):
        with pytest.raises(ValueError):
            link.send(RadioFrameData(b'on'), 'nowhere')

    def test_bad_local_address(self):
        with pytest.raises(ValueError):
            RadioLinkUDP(20000, '1234')

    def test_state(self, link):
        assert link.is_open()
        assert link.get_address() == GATEWAY_ADDR
        assert not RadioLinkUDP(20000, GATEWAY_ADDR).is_open()


class TestRequest:
    """Test request/response matching."""

    def test_at_response(self, link):
        reply_with(link, lambda dest, req: [(dest, RadioFrameAtResponse(req.command, value=b'NODE1'))])

        response = link.request(RadioFrameAtRequest(b'NI'), NODE_ADDR.lower(), 1)
        assert (response.command, response.value) == (b'NI', b'NODE1')
        assert link.pending == {}

    def test_frame_ids_advance(self, link):
        reply_with(link, lambda dest, req: [(dest, RadioFrameAtResponse(req.command))])

        first = RadioFrameAtRequest(b'NI')
        second = RadioFrameAtRequest(b'NI')
        link.request(first, NODE_ADDR, 1)
        link.request(second, NODE_ADDR, 1)
        assert first.frame_id != second.frame_id
        assert 0 not in (first.frame_id, second.frame_id)

    def test_reply_from_wrong_node(self, link):
        reply_with(link, lambda dest, req: [(OTHER, RadioFrameAtResponse(req.command))])

        with pytest.raises(RadioTimeoutError):
            link.request(RadioFrameAtRequest(b'NI'), NODE_ADDR, 0.01)

    def test_timeout(self, link):
        with pytest.raises(RadioTimeoutError):
            link.request(RadioFrameAtRequest(b'NI'), NODE_ADDR, 0.01)
        assert link.pending == {}

    def test_discovery(self, link):
        reply_with(link, lambda dest, req: [
            (NODE, RadioFrameDiscoveryResponse(b'NODE1')),
            (OTHER, RadioFrameDiscoveryResponse(b'NODE2')),
        ])

        nodes = link.discover_nodes(0.01)
        assert nodes == [(NODE_ADDR, 'NODE1'), ('0013A20040000001', 'NODE2')]
        sent = link.sock.sendto.call_args.args[0]
        assert sent[RADIO_ADDR_LEN:2 * RADIO_ADDR_LEN] == BROADCAST

    def test_discovery_nobody(self, link):
        assert link.discover_nodes(0.01) == []

    def test_close_wakes_waiters(self, link):
        link.pending[1] = MagicMock()
        link.close()
        assert link.pending == {}
        assert not link.is_open()
