from enum import Enum, unique
from typing import List, Optional, Tuple

from xbmq_defines import *


@unique
class XbmqTopicKind(Enum):
    STATUS = XBMQ_TOPIC_STATUS
    DATA = XBMQ_TOPIC_DATA
    AT = XBMQ_TOPIC_AT
    IO = XBMQ_TOPIC_IO
    DISCOVERY = XBMQ_TOPIC_DISCOVERY


# kinds with one channel per remote radio node
NODE_SCOPED_KINDS = (XbmqTopicKind.DATA, XbmqTopicKind.AT, XbmqTopicKind.IO)

# characters that would let one gateway's topics overlap another's
_RESERVED_CHARS = (XBMQ_TOPIC_SEP, '+', '#')

# wildcards are never valid in a topic we publish to
_WILDCARD_CHARS = ('+', '#')


class XbmqTopic:
    """
    Topic names for a single gateway. Every topic starts with the root topic
    (if any) and the address of the local radio, so several gateways can
    share one broker:

        [root/]gateway/status
        [root/]gateway/data/<node>
        [root/]gateway/at/<node>
        [root/]gateway/io/<node>
        [root/]gateway/discovery

    Messages for the radio network are received on the same channels with
    a trailing '/request'.
    """

    def __init__(self, root_topic: Optional[str], gateway_id: str):
        if not gateway_id:
            raise ValueError('Gateway ID cannot be empty.')
        if any(c in gateway_id for c in _RESERVED_CHARS):
            raise ValueError('Gateway ID {} contains a reserved topic character.'.format(gateway_id))
        if root_topic and any(c in root_topic for c in _WILDCARD_CHARS):
            raise ValueError('Root topic {} contains a wildcard.'.format(root_topic))

        self.root_topic = (root_topic or '').strip(XBMQ_TOPIC_SEP)
        self.gateway_id = gateway_id

        if self.root_topic:
            self.base = self.root_topic + XBMQ_TOPIC_SEP + gateway_id
        else:
            self.base = gateway_id

    def topic_for(self, kind: XbmqTopicKind, node_id: Optional[str] = None) -> str:
        topic = self.base + XBMQ_TOPIC_SEP + kind.value
        if node_id:
            topic += XBMQ_TOPIC_SEP + node_id
        return topic

    def request_for(self, kind: XbmqTopicKind, node_id: Optional[str] = None) -> str:
        return self.topic_for(kind, node_id) + XBMQ_TOPIC_SEP + XBMQ_TOPIC_REQUEST

    def online(self, node_scoped: bool = False, node_id: str = '') -> str:
        # node scoped status is not announced by the gateway yet
        if not node_scoped:
            return self.topic_for(XbmqTopicKind.STATUS)
        if not node_id:
            raise ValueError('Node scoped status requires a node ID.')
        return self.topic_for(XbmqTopicKind.STATUS, node_id)

    def data(self, node_id: str) -> str:
        return self.topic_for(XbmqTopicKind.DATA, node_id)

    def at(self, node_id: str) -> str:
        return self.topic_for(XbmqTopicKind.AT, node_id)

    def io(self, node_id: str) -> str:
        return self.topic_for(XbmqTopicKind.IO, node_id)

    def discovery(self) -> str:
        return self.topic_for(XbmqTopicKind.DISCOVERY)

    def data_subscription(self) -> str:
        return self.request_for(XbmqTopicKind.DATA, '+')

    def at_subscription(self) -> str:
        return self.request_for(XbmqTopicKind.AT, '+')

    def discovery_subscription(self) -> str:
        return self.request_for(XbmqTopicKind.DISCOVERY)

    def subscriptions(self) -> List[str]:
        return [self.data_subscription(), self.at_subscription(), self.discovery_subscription()]

    def parse_request(self, topic: str) -> Optional[Tuple[XbmqTopicKind, Optional[str]]]:
        """
        Split an inbound request topic into its kind and node address.
        Returns None for anything outside this gateway's request topics.
        """
        prefix = self.base + XBMQ_TOPIC_SEP
        if not topic.startswith(prefix):
            return None

        parts = topic[len(prefix):].split(XBMQ_TOPIC_SEP)
        if len(parts) < 2 or parts[-1] != XBMQ_TOPIC_REQUEST:
            return None
        parts = parts[:-1]

        try:
            kind = XbmqTopicKind(parts[0])
        except ValueError:
            return None

        if kind in NODE_SCOPED_KINDS and len(parts) == 2 and parts[1]:
            return kind, parts[1]
        if kind == XbmqTopicKind.DISCOVERY and len(parts) == 1:
            return kind, None
        return None

    def __str__(self):
        return self.base
