import abc
from concurrent.futures import Future
from typing import Callable, List, Optional

from xbmq_defines import XBMQ_DEFAULT_KEEPALIVE

# callback(error), error is None once the message is delivered
PublishCallback = Callable[[Optional[Exception]], None]

# handler(topic, payload, qos, retain)
InboundHandler = Callable[[str, bytes, int, bool], None]


class BrokerWill:
    def __init__(self, topic, payload=b'', qos=0, retain=False):
        self.topic = topic
        self.payload = payload
        self.qos = qos
        self.retain = retain


class BrokerConnectOptions:
    def __init__(self):
        self.clean_session = True
        self.keepalive = XBMQ_DEFAULT_KEEPALIVE
        self.will: Optional[BrokerWill] = None
        self.username: Optional[str] = None
        self.password: Optional[str] = None

    def set_will(self, topic, payload, qos, retain):
        self.will = BrokerWill(topic, payload, qos, retain)

    def set_credentials(self, username, password):
        self.username = username
        self.password = password


# MQTT client interface, with methods relevant to the gateway
class BrokerClient(abc.ABC):
    @abc.abstractmethod
    def get_client_id(self) -> str:
        return ''

    @abc.abstractmethod
    def is_connected(self) -> bool:
        return False

    # the future resolves once the broker accepts or refuses us
    @abc.abstractmethod
    def connect(self, options: BrokerConnectOptions) -> Future:
        pass

    @abc.abstractmethod
    def disconnect(self) -> Future:
        pass

    @abc.abstractmethod
    def publish(self, topic: str, payload: bytes, qos: int, retain: bool, callback: PublishCallback):
        pass

    @abc.abstractmethod
    def subscribe(self, topics: List[str], qos: List[int]):
        pass

    @abc.abstractmethod
    def set_inbound_callback(self, handler: InboundHandler):
        pass
