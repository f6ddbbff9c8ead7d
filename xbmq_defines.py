XBMQ_TOPIC_SEP = '/'

# topic suffixes, one per message kind
XBMQ_TOPIC_STATUS = 'status'
XBMQ_TOPIC_DATA = 'data'
XBMQ_TOPIC_AT = 'at'
XBMQ_TOPIC_IO = 'io'
XBMQ_TOPIC_DISCOVERY = 'discovery'

# appended to a channel for messages going from the broker to the radio,
# so the gateway never receives its own publishes back
XBMQ_TOPIC_REQUEST = 'request'

# single byte availability payloads, both retained
XBMQ_ONLINE = b'1'
XBMQ_OFFLINE = b'0'
XBMQ_WILL_QOS = 0

XBMQ_PUBLISH_QOS = 0
XBMQ_SUBSCRIBE_QOS = 0

# broker defaults
XBMQ_DEFAULT_HOST = 'localhost'
XBMQ_DEFAULT_PORT = 1883
XBMQ_DEFAULT_KEEPALIVE = 60

#############################
# For the radio link
#############################

# 64-bit hardware addresses
RADIO_ADDR_LEN = 8
RADIO_BROADCAST_ADDR = '000000000000FFFF'

# enough for any frame we send, datagrams are addr + addr + frame
RADIO_MAX_FRAME_LEN = 256

RADIO_DEFAULT_PORT = 20000

# in seconds
RADIO_REQUEST_TIMEOUT = 5
RADIO_DISCOVERY_TIMEOUT = 3
RADIO_POLL_INTERVAL = 0.1
