from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import IntEnum, unique
from typing import Callable, Optional

from broker_client import BrokerClient, BrokerConnectOptions
from radio_link import RadioLink
from xbmq_defines import *
from xbmq_errors import (AlreadyConnectedError, BrokerError, NotConnectedError, RadioError,
                         SessionClosedError, XbmqError)
from xbmq_listeners import XbmqBrokerCallback, XbmqDataReceiveListener, XbmqSampleReceiveListener
from xbmq_topic import XbmqTopic
import logging

# sink(topic, error) for publishes that failed after publish() returned
ErrorSink = Callable[[str, Exception], None]


@unique
class XbmqState(IntEnum):
    CONSTRUCTED = 0
    CONNECTED = 1
    DISCONNECTED = 2


def log_publish_failure(topic: str, error: Exception):
    logging.error('Publish to {} failed: {}'.format(topic, error), exc_info=error)


def _wait(future, timeout, action):
    # blocking wait on the broker's async handshake,
    # any timeout beyond this one is the client's business
    try:
        future.result(timeout)
    except FutureTimeoutError:
        raise BrokerError('{} timed out after {}s.'.format(action, timeout))


class Xbmq:
    """
    Manage the radio and MQTT connections, topics and listeners. A single
    instance is shared by every listener so they all publish under the same
    topics and the same availability status.

    The session does not open the radio or create the broker client, it
    only checks their state and coordinates them. Lifecycle is single use:
    construct, connect() once, disconnect() once.
    """

    def __init__(self, radio: RadioLink, mqttc: BrokerClient, root_topic: Optional[str] = '',
                 username: Optional[str] = None, password: Optional[str] = None,
                 error_sink: Optional[ErrorSink] = None, keepalive: int = XBMQ_DEFAULT_KEEPALIVE):
        if radio is None or mqttc is None:
            raise ValueError('Radio and/or MQTT client cannot be None.')
        if not radio.is_open():
            raise ValueError('Radio is not open.')
        if not mqttc.get_client_id():
            raise ValueError('MQTT client requires a client ID.')
        if (username is None) != (password is None):
            raise ValueError('Username and password must both be excluded or passed.')
        if keepalive < 0:
            raise ValueError('Keepalive cannot be negative.')

        self.radio = radio
        self.mqttc = mqttc
        self.root_topic = root_topic or ''
        self.topics = XbmqTopic(self.root_topic, radio.get_address())
        self.username = username
        self.password = password
        self.error_sink = error_sink if error_sink else log_publish_failure
        self.keepalive = keepalive

        self.state = XbmqState.CONSTRUCTED

    def connect(self, timeout: Optional[float] = None):
        """
        Connect to the MQTT broker and announce ourselves online. The
        last will marks us offline if we vanish without disconnect().
        Blocks until the broker accepts or refuses the connection.
        """
        if self.mqttc.is_connected():
            raise AlreadyConnectedError()
        if self.state == XbmqState.DISCONNECTED:
            raise SessionClosedError('Session was disconnected and cannot be reused.')

        options = BrokerConnectOptions()
        options.set_will(self.topics.online(False), XBMQ_OFFLINE, XBMQ_WILL_QOS, True)
        options.clean_session = False
        options.keepalive = self.keepalive
        if self.username is not None and self.password is not None:
            options.set_credentials(self.username, self.password)

        logging.info('Connecting {} as {}.'.format(self.topics, self.mqttc.get_client_id()))
        _wait(self.mqttc.connect(options), timeout, 'Connect')
        self.state = XbmqState.CONNECTED

        # set online status, not waiting for it to go out
        self.publish(self.topics.online(False), XBMQ_ONLINE, retain=True)

    def disconnect(self, timeout: Optional[float] = None):
        """
        Close the radio, announce ourselves offline and disconnect from
        the broker. Blocks until the broker connection is closed. The
        radio stays closed even if the broker disconnect fails.
        """
        # nothing to recover on the radio side, keep shutting down
        try:
            self.radio.close()
        except (RadioError, OSError) as e:
            logging.error('Closing radio failed: {}'.format(e))

        # set offline status
        self.publish(self.topics.online(False), XBMQ_OFFLINE, retain=True)

        self.state = XbmqState.DISCONNECTED
        _wait(self.mqttc.disconnect(), timeout, 'Disconnect')
        logging.info('Gateway {} disconnected.'.format(self.topics))

    def publish(self, topic: str, payload: bytes, qos: int = XBMQ_PUBLISH_QOS, retain: bool = False):
        """
        Publish a message to the MQTT broker. Asynchronous: returns as soon
        as the client has the message. A failed delivery is passed to the
        error sink, it is never raised here.
        """
        if self.state != XbmqState.CONNECTED:
            self.error_sink(topic, NotConnectedError('Gateway is not connected, dropping message.'))
            return

        def on_complete(error):
            if error is not None:
                self.error_sink(topic, error)

        logging.debug('MQTT-PUBLISH {} to {}'.format(payload, topic))
        try:
            self.mqttc.publish(topic, payload, qos, retain, on_complete)
        except (ValueError, XbmqError) as e:
            self.error_sink(topic, e)

    def subscribe(self, qos: int = XBMQ_SUBSCRIBE_QOS):
        topics = self.topics.subscriptions()
        self.mqttc.subscribe(topics, [qos] * len(topics))

    # factories mainly so tests can swap listeners in,
    # the listeners can always be built directly
    def data_listener_factory(self):
        return XbmqDataReceiveListener(self)

    def sample_listener_factory(self):
        return XbmqSampleReceiveListener(self)

    def broker_callback_factory(self, **kwargs):
        return XbmqBrokerCallback(self, **kwargs)

    # hook the listeners up to both transports, extra args go to the broker callback
    def register_listeners(self, **kwargs):
        self.radio.add_data_listener(self.data_listener_factory())
        self.radio.add_sample_listener(self.sample_listener_factory())
        self.mqttc.set_inbound_callback(self.broker_callback_factory(**kwargs))
