"""Tests for the radio and broker event listeners."""

import json
import logging

import pytest

from helpers import GATEWAY_ADDR, NODE_ADDR, published
from radio_frames import RADIO_AT_ERROR, RadioFrameAtRequest, RadioFrameAtResponse, RadioFrameData
from xbmq_errors import RadioError, RadioTimeoutError
from xbmq_listeners import XbmqBrokerCallback, XbmqDataReceiveListener, XbmqSampleReceiveListener

BASE = GATEWAY_ADDR + '/'


class TestRadioListeners:
    """Radio events end up on the node's channel."""

    def test_data(self, connected, mqttc):
        XbmqDataReceiveListener(connected)(NODE_ADDR, b'\x01hello')
        assert published(mqttc) == [(BASE + 'data/' + NODE_ADDR, b'\x01hello', 0, False)]

    def test_sample(self, connected, mqttc):
        XbmqSampleReceiveListener(connected)(NODE_ADDR, {0: 1, 0x11: 512})

        topic, payload, qos, retain = published(mqttc)[0]
        assert topic == BASE + 'io/' + NODE_ADDR
        assert json.loads(payload) == {'D0': 1, 'A1': 512}

    def test_publish_failure_stays_off_radio_thread(self, connected, mqttc, error_sink):
        mqttc.publish.side_effect = lambda topic, payload, qos, retain, cb: cb(RadioError('x'))
        XbmqDataReceiveListener(connected)(NODE_ADDR, b'x')
        error_sink.assert_called_once()


class TestBrokerCallback:
    """Requests from the broker go out over the radio."""

    @pytest.fixture
    def callback(self, connected):
        return XbmqBrokerCallback(connected, request_timeout=2, discovery_timeout=1)

    def test_data_request(self, callback, radio, mqttc):
        callback(BASE + 'data/' + NODE_ADDR + '/request', b'on', 0, False)

        radio.send.assert_called_once_with(RadioFrameData(b'on'), NODE_ADDR)
        mqttc.publish.assert_not_called()

    def test_at_query(self, callback, radio, mqttc):
        radio.request.return_value = RadioFrameAtResponse(b'NI', value=b'NODE1')

        callback(BASE + 'at/' + NODE_ADDR + '/request', b'NI', 0, False)

        frame, dest, timeout = radio.request.call_args.args
        assert frame == RadioFrameAtRequest(b'NI', b'')
        assert (dest, timeout) == (NODE_ADDR, 2)

        topic, payload, _, _ = published(mqttc)[0]
        assert topic == BASE + 'at/' + NODE_ADDR
        assert json.loads(payload) == {'command': 'NI', 'status': 'ok', 'value': b'NODE1'.hex().upper()}

    def test_at_set(self, callback, radio):
        radio.request.return_value = RadioFrameAtResponse(b'D0')
        callback(BASE + 'at/' + NODE_ADDR + '/request', b'D0=0x05', 0, False)
        assert radio.request.call_args.args[0] == RadioFrameAtRequest(b'D0', b'\x05')

    def test_at_error_status(self, callback, radio, mqttc):
        radio.request.return_value = RadioFrameAtResponse(b'ZZ', RADIO_AT_ERROR)
        callback(BASE + 'at/' + NODE_ADDR + '/request', b'ZZ', 0, False)
        assert json.loads(published(mqttc)[0][1])['status'] == 'error'

    def test_at_timeout(self, callback, radio, mqttc):
        radio.request.side_effect = RadioTimeoutError('no answer')

        callback(BASE + 'at/' + NODE_ADDR + '/request', b'NI', 0, False)
        assert json.loads(published(mqttc)[0][1]) == {'command': 'NI', 'status': 'timeout', 'value': ''}

    def test_malformed_at(self, callback, radio, mqttc, caplog):
        with caplog.at_level(logging.ERROR):
            callback(BASE + 'at/' + NODE_ADDR + '/request', b'TOOLONG', 0, False)
        radio.request.assert_not_called()
        mqttc.publish.assert_not_called()
        assert 'Malformed AT request' in caplog.text

    def test_discovery(self, callback, radio, mqttc):
        radio.discover_nodes.return_value = [(NODE_ADDR, 'NODE1')]

        callback(BASE + 'discovery/request', b'', 0, False)

        radio.discover_nodes.assert_called_once_with(1)
        topic, payload, _, _ = published(mqttc)[0]
        assert topic == BASE + 'discovery'
        assert json.loads(payload) == [{'address': NODE_ADDR, 'node_id': 'NODE1'}]

    def test_discovery_timeout_from_payload(self, callback, radio):
        radio.discover_nodes.return_value = []
        callback(BASE + 'discovery/request', b'2.5', 0, False)
        radio.discover_nodes.assert_called_once_with(2.5)

    def test_retained_ignored(self, callback, radio):
        callback(BASE + 'data/' + NODE_ADDR + '/request', b'on', 0, True)
        radio.send.assert_not_called()

    @pytest.mark.parametrize('topic', [
        BASE + 'data/' + NODE_ADDR,
        'other/data/' + NODE_ADDR + '/request',
        BASE + 'io/' + NODE_ADDR + '/request',
    ])
    def test_other_topics_ignored(self, callback, radio, mqttc, topic):
        callback(topic, b'on', 0, False)
        radio.send.assert_not_called()
        radio.request.assert_not_called()
        mqttc.publish.assert_not_called()

    def test_radio_error_logged(self, callback, radio, caplog):
        radio.send.side_effect = RadioError('Radio link is not open.')

        with caplog.at_level(logging.ERROR):
            callback(BASE + 'data/' + NODE_ADDR + '/request', b'on', 0, False)
        assert 'not open' in caplog.text

    def test_socket_error_logged(self, callback, radio, caplog):
        """Errors from the radio's socket stay out of the broker client's thread."""
        radio.send.side_effect = OSError(101, 'Network is unreachable')

        with caplog.at_level(logging.ERROR):
            callback(BASE + 'data/' + NODE_ADDR + '/request', b'on', 0, False)
        assert 'Network is unreachable' in caplog.text

    def test_oversized_data_logged(self, callback, radio, caplog):
        radio.send.side_effect = lambda frame, dest: frame.pack()

        with caplog.at_level(logging.ERROR):
            callback(BASE + 'data/' + NODE_ADDR + '/request', b'x' * 400, 0, False)
        assert 'too long' in caplog.text
