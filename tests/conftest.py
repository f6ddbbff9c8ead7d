"""Shared fakes for the radio link and the broker client."""

from unittest.mock import MagicMock

import pytest

from broker_client import BrokerClient
from helpers import GATEWAY_ADDR, done_future
from radio_link import RadioLink
from xbmq_session import Xbmq


@pytest.fixture
def radio():
    """An open radio link."""
    radio = MagicMock(spec=RadioLink)
    radio.is_open.return_value = True
    radio.get_address.return_value = GATEWAY_ADDR
    return radio


@pytest.fixture
def mqttc():
    """A broker client whose handshakes complete immediately."""
    mqttc = MagicMock(spec=BrokerClient)
    mqttc.get_client_id.return_value = 'gw1'
    mqttc.is_connected.return_value = False
    mqttc.connect.return_value = done_future()
    mqttc.disconnect.return_value = done_future()
    return mqttc


@pytest.fixture
def error_sink():
    return MagicMock()


@pytest.fixture
def xbmq(radio, mqttc, error_sink):
    """A constructed, not yet connected session."""
    return Xbmq(radio, mqttc, '', error_sink=error_sink)


@pytest.fixture
def connected(xbmq, mqttc):
    """A connected session with the online announcement already cleared."""
    xbmq.connect()
    mqttc.is_connected.return_value = True
    mqttc.publish.reset_mock()
    return xbmq
