from typing import TYPE_CHECKING, Dict

from radio_frames import RadioFrameData
from xbmq_defines import RADIO_DISCOVERY_TIMEOUT, RADIO_REQUEST_TIMEOUT
from xbmq_errors import RadioError, RadioTimeoutError
from xbmq_messages import *
from xbmq_topic import XbmqTopicKind
import logging

if TYPE_CHECKING:
    from xbmq_session import Xbmq

# Every listener gets the one shared session and does all its
# publishing and radio traffic through it.


class XbmqDataReceiveListener:
    """Publish data frames from remote nodes to [root/]gateway/data/<node>."""

    def __init__(self, xbmq: 'Xbmq'):
        self.xbmq = xbmq

    def __call__(self, address: str, data: bytes):
        logging.debug('DATA {} from {}'.format(data, address))
        self.xbmq.publish(self.xbmq.topics.data(address), data)


class XbmqSampleReceiveListener:
    """Publish IO samples from remote nodes to [root/]gateway/io/<node>."""

    def __init__(self, xbmq: 'Xbmq'):
        self.xbmq = xbmq

    def __call__(self, address: str, samples: Dict[int, int]):
        logging.debug('IO-SAMPLE {} from {}'.format(samples, address))
        msg = XbmqSampleMessage(samples)
        self.xbmq.publish(self.xbmq.topics.io(address), msg.pack())


class XbmqBrokerCallback:
    """
    Handle PUBLISH msgs from the broker on the gateway's request topics and
    pass them on to the radio network. AT commands and discovery wait for
    the radio's answer and publish it back on the matching channel.
    """

    def __init__(self, xbmq: 'Xbmq', request_timeout=RADIO_REQUEST_TIMEOUT,
                 discovery_timeout=RADIO_DISCOVERY_TIMEOUT):
        self.xbmq = xbmq
        self.request_timeout = request_timeout
        self.discovery_timeout = discovery_timeout

        self.handlers = {
            XbmqTopicKind.DATA: self._handle_data,
            XbmqTopicKind.AT: self._handle_at,
            XbmqTopicKind.DISCOVERY: self._handle_discovery,
        }

    def __call__(self, topic: str, payload: bytes, qos: int, retain: bool):
        # a retained request would be replayed to the radio on every reconnect
        if retain:
            logging.debug('Ignoring retained request on {}'.format(topic))
            return

        parsed = self.xbmq.topics.parse_request(topic)
        if parsed is None:
            logging.debug('Ignoring PUBLISH to unknown topic {}'.format(topic))
            return

        kind, node = parsed
        handler = self.handlers.get(kind)
        if handler is None:
            logging.debug('No handler for {} requests'.format(kind.value))
            return

        try:
            handler(node, payload)
        except (RadioError, ValueError, OSError) as e:
            logging.error('{} request on {} failed: {}'.format(kind.value, topic, e))

    def _handle_data(self, node, payload):
        logging.debug('DATA-REQUEST {} to {}'.format(payload, node))
        self.xbmq.radio.send(RadioFrameData(payload), node)

    def _handle_at(self, node, payload):
        msg = XbmqAtRequest()
        if not msg.unpack(payload):
            logging.error('Malformed AT request {} for {}'.format(payload, node))
            return

        logging.debug('AT-REQUEST {} to {}'.format(msg, node))
        try:
            frame = self.xbmq.radio.request(msg.to_frame(), node, self.request_timeout)
            reply = XbmqAtResponse.from_frame(frame)
        except RadioTimeoutError:
            logging.info('AT {} to {} timed out'.format(msg.command, node))
            reply = XbmqAtResponse(msg.command, AT_STATUS_TIMEOUT)

        self.xbmq.publish(self.xbmq.topics.at(node), reply.pack())

    def _handle_discovery(self, node, payload):
        msg = XbmqDiscoveryRequest()
        if not msg.unpack(payload):
            logging.error('Malformed discovery request {}'.format(payload))
            return

        timeout = msg.timeout if msg.timeout is not None else self.discovery_timeout
        nodes = self.xbmq.radio.discover_nodes(timeout)
        logging.info('Discovered {} node(s)'.format(len(nodes)))

        reply = XbmqDiscoveryResponse(nodes)
        self.xbmq.publish(self.xbmq.topics.discovery(), reply.pack())
