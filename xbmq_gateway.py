from broker_client_paho import BrokerClientPaho
from radio_link_udp import RadioLinkUDP
from xbmq_config import XbmqConfig
from xbmq_errors import XbmqError
from xbmq_session import Xbmq
import threading
import signal
import logging
import sys


def setup_logging(verbose=False):
    logging.basicConfig(stream=sys.stdout, format='[+]%(message)s',
                        level=logging.DEBUG if verbose else logging.INFO)


def start_gateway(config: XbmqConfig, radio=None, mqttc=None):
    # open the radio first, the session only checks that it is
    radio = radio if radio else RadioLinkUDP(config.radio_port, config.radio_address)
    radio.open()

    mqttc = mqttc if mqttc else BrokerClientPaho(config.broker_host, config.broker_port, config.client_id)

    try:
        xbmq = Xbmq(radio, mqttc, config.root_topic, config.username, config.password,
                    keepalive=config.keepalive)
        xbmq.connect()
    except (XbmqError, ValueError):
        radio.close()
        raise

    # setup listeners for unsolicited frames and incoming PUBLISH msgs
    xbmq.register_listeners(request_timeout=config.request_timeout,
                            discovery_timeout=config.discovery_timeout)

    # subscribe to requests for this gateway only
    xbmq.subscribe()
    logging.info('Gateway {} running.'.format(xbmq.topics))
    return xbmq


def main(argv=None):
    config = XbmqConfig.from_args(argv)
    setup_logging(config.verbose)

    try:
        config.validate()
        xbmq = start_gateway(config)
    except (XbmqError, ValueError, OSError) as e:
        logging.error('Gateway failed to start: {}'.format(e))
        return 1

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    # everything happens on the transport threads from here
    while not stop.wait(1):
        pass

    try:
        xbmq.disconnect()
    except XbmqError as e:
        logging.error('Gateway failed to disconnect cleanly: {}'.format(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
