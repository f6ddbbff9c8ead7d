"""Helpers shared by the tests."""

from concurrent.futures import Future

GATEWAY_ADDR = '0013A20040A1B2C3'
NODE_ADDR = '0013A20040D4E5F6'


def done_future(error=None):
    future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(None)
    return future


def published(mqttc):
    """(topic, payload, qos, retain) of every publish handed to the client."""
    return [c.args[:4] for c in mqttc.publish.call_args_list]
