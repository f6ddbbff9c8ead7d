import argparse
import os
from typing import Optional

from radio_frames import address_to_bytes
from xbmq_defines import *

ENV_PREFIX = 'XBMQ_'


class XbmqConfig:
    """
    Everything the gateway needs to start. Values come from the command
    line, with XBMQ_* environment variables as the defaults, e.g.
    XBMQ_BROKER_HOST, XBMQ_CLIENT_ID, XBMQ_USERNAME.
    """

    def __init__(self, client_id='', broker_host=XBMQ_DEFAULT_HOST, broker_port=XBMQ_DEFAULT_PORT,
                 keepalive=XBMQ_DEFAULT_KEEPALIVE, root_topic='',
                 username: Optional[str] = None, password: Optional[str] = None,
                 radio_port=RADIO_DEFAULT_PORT, radio_address='',
                 request_timeout=RADIO_REQUEST_TIMEOUT, discovery_timeout=RADIO_DISCOVERY_TIMEOUT,
                 verbose=False):
        self.client_id = client_id
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.keepalive = keepalive
        self.root_topic = root_topic
        self.username = username
        self.password = password
        self.radio_port = radio_port
        self.radio_address = radio_address
        self.request_timeout = request_timeout
        self.discovery_timeout = discovery_timeout
        self.verbose = verbose

    def validate(self):
        if not self.client_id:
            raise ValueError('A client ID is required.')
        if (self.username is None) != (self.password is None):
            raise ValueError('Username and password must both be excluded or passed.')
        # raises ValueError for anything that isn't an 8-byte hex address
        address_to_bytes(self.radio_address)
        if not 0 < self.broker_port < 65536 or not 0 < self.radio_port < 65536:
            raise ValueError('Ports must be between 1 and 65535.')
        if self.request_timeout <= 0 or self.discovery_timeout <= 0:
            raise ValueError('Timeouts must be positive.')
        if self.keepalive < 0:
            raise ValueError('Keepalive cannot be negative.')
        return self

    @classmethod
    def from_args(cls, argv=None, environ=None):
        args = build_parser(environ).parse_args(argv)
        return cls(client_id=args.client_id, broker_host=args.broker_host,
                   broker_port=args.broker_port, keepalive=args.keepalive,
                   root_topic=args.root_topic, username=args.username, password=args.password,
                   radio_port=args.radio_port, radio_address=args.radio_address,
                   request_timeout=args.request_timeout, discovery_timeout=args.discovery_timeout,
                   verbose=args.verbose)


def build_parser(environ=None):
    env = os.environ if environ is None else environ

    def default(name, value=None):
        return env.get(ENV_PREFIX + name, value)

    parser = argparse.ArgumentParser(prog='xbmq', description='Radio mesh to MQTT gateway.')
    parser.add_argument('--broker-host', default=default('BROKER_HOST', XBMQ_DEFAULT_HOST),
                        help='MQTT broker host name')
    parser.add_argument('--broker-port', type=int, default=int(default('BROKER_PORT', XBMQ_DEFAULT_PORT)),
                        help='MQTT broker port')
    parser.add_argument('--keepalive', type=int, default=int(default('KEEPALIVE', XBMQ_DEFAULT_KEEPALIVE)),
                        help='MQTT keepalive in seconds')
    parser.add_argument('--client-id', default=default('CLIENT_ID', ''),
                        help='MQTT client ID, required')
    parser.add_argument('--root-topic', default=default('ROOT_TOPIC', ''),
                        help='prefix for every topic, may be empty')
    parser.add_argument('--username', default=default('USERNAME'),
                        help='MQTT username, needs --password too')
    parser.add_argument('--password', default=default('PASSWORD'),
                        help='MQTT password, needs --username too')
    parser.add_argument('--radio-port', type=int, default=int(default('RADIO_PORT', RADIO_DEFAULT_PORT)),
                        help='UDP port of the virtual radio network')
    parser.add_argument('--radio-address', default=default('RADIO_ADDRESS', ''),
                        help='64-bit address of the local radio, 16 hex digits')
    parser.add_argument('--request-timeout', type=float,
                        default=float(default('REQUEST_TIMEOUT', RADIO_REQUEST_TIMEOUT)),
                        help='seconds to wait for an AT command response')
    parser.add_argument('--discovery-timeout', type=float,
                        default=float(default('DISCOVERY_TIMEOUT', RADIO_DISCOVERY_TIMEOUT)),
                        help='seconds to collect node discovery responses')
    parser.add_argument('-v', '--verbose', action='store_true',
                        default=default('VERBOSE', '') not in ('', '0'),
                        help='log every frame and message')
    return parser
