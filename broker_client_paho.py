from concurrent.futures import Future
from broker_client import BrokerClient, BrokerConnectOptions
from xbmq_errors import BrokerError, NotConnectedError
import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion
import threading
import logging


class BrokerClientPaho(BrokerClient):
    """
    BrokerClient on top of paho-mqtt. paho's network thread (loop_start)
    does all the I/O; connect() and disconnect() hand back futures that
    the callbacks on that thread complete.
    """

    def __init__(self, server, port, cid):
        self.server = server
        self.port = port
        self.cid = cid

        # created on connect, clean session is fixed at construction in paho
        self.client = None

        # registered by the gateway for incoming PUBLISH msgs
        self.inbound_cb = None

        self.connect_future = None
        self.disconnect_future = None

        # publish callbacks waiting on their message id
        self.inflight = {}
        # ids paho finished before publish() got to register them
        self.completed = set()
        self.lock = threading.Lock()

    def get_client_id(self):
        return self.cid

    def is_connected(self):
        return self.client is not None and self.client.is_connected()

    def set_inbound_callback(self, handler):
        self.inbound_cb = handler

    def _create_client(self, options: BrokerConnectOptions):
        # a dropped connection ends the session, paho must not quietly resume it
        client = mqtt.Client(CallbackAPIVersion.VERSION2, client_id=self.cid,
                             clean_session=options.clean_session, reconnect_on_failure=False)

        if options.will:
            will = options.will
            client.will_set(will.topic, will.payload, will.qos, will.retain)
        if options.username is not None:
            client.username_pw_set(options.username, options.password)

        # register internal callback for handling conn/disconn/msgs
        client.on_connect = self.connect_cb
        client.on_connect_fail = self.connect_fail_cb
        client.on_disconnect = self.disconnect_cb
        client.on_publish = self.publish_cb
        client.on_message = self.message_cb
        return client

    def connect(self, options):
        future = Future()
        self.connect_future = future

        if self.client is not None:
            self.client.loop_stop()
        self.client = self._create_client(options)

        try:
            self.client.connect_async(self.server, self.port, options.keepalive)
            self.client.loop_start()
        except (OSError, ValueError) as e:
            future.set_exception(BrokerError('Cannot connect to {}:{}: {}'.format(self.server, self.port, e)))

        return future

    def disconnect(self):
        future = Future()
        self.disconnect_future = future

        if self.client is None:
            future.set_exception(NotConnectedError())
            return future

        rc = self.client.disconnect()
        if rc != mqtt.MQTT_ERR_SUCCESS:
            future.set_exception(BrokerError('Disconnect failed: {}'.format(mqtt.error_string(rc)), rc))
        return future

    def publish(self, topic, payload, qos, retain, callback):
        if self.client is None:
            self._notify(callback, NotConnectedError())
            return

        info = self.client.publish(topic, payload, qos, retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._notify(callback, BrokerError('Publish to {} failed: {}'.format(
                topic, mqtt.error_string(info.rc)), info.rc))
            return

        with self.lock:
            if info.mid not in self.completed:
                self.inflight[info.mid] = callback
                return
            self.completed.discard(info.mid)

        self._notify(callback, None)

    def subscribe(self, topics, qos):
        if self.client is None:
            raise NotConnectedError()

        rc, _ = self.client.subscribe(list(zip(topics, qos)))
        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise BrokerError('Subscribe failed: {}'.format(mqtt.error_string(rc)), rc)
        logging.debug('MQTT-SUBSCRIBE {}'.format(topics))

    # called whenever we get a PUBLISH message
    def message_cb(self, client, userdata, message: mqtt.MQTTMessage):
        if not self.inbound_cb:
            return

        # an exception here would end paho's network thread
        try:
            self.inbound_cb(message.topic, message.payload, message.qos, bool(message.retain))
        except Exception:
            logging.exception('Handler for PUBLISH to {} failed'.format(message.topic))

    # called when the broker answers our CONNECT
    def connect_cb(self, client, userdata, flags, reason_code, properties):
        future = self.connect_future

        if reason_code.is_failure:
            logging.error('MQTT connection refused: {}'.format(reason_code))
            if future and not future.done():
                # no retries here, stop paho from trying again
                client.loop_stop()
                future.set_exception(BrokerError('Connection refused: {}'.format(reason_code),
                                                 reason_code.value))
            return

        logging.info('MQTT connected to {}:{}.'.format(self.server, self.port))
        if future and not future.done():
            future.set_result(None)

    # called when the network connection itself could not be made
    def connect_fail_cb(self, client, userdata):
        future = self.connect_future
        logging.error('MQTT connection to {}:{} failed.'.format(self.server, self.port))
        if future and not future.done():
            client.loop_stop()
            future.set_exception(BrokerError('Cannot connect to {}:{}.'.format(self.server, self.port)))

    def disconnect_cb(self, client, userdata, flags, reason_code, properties):
        logging.info('MQTT disconnected: {}'.format(reason_code))

        # whatever hasn't gone out by now never will on this connection
        with self.lock:
            lost = list(self.inflight.values())
            self.inflight.clear()
        for callback in lost:
            self._notify(callback, BrokerError('Connection lost before delivery.', reason_code.value))

        future = self.disconnect_future
        if future and not future.done():
            if reason_code.is_failure:
                future.set_exception(BrokerError('Disconnect failed: {}'.format(reason_code),
                                                 reason_code.value))
            else:
                future.set_result(None)

    def publish_cb(self, client, userdata, mid, reason_code, properties):
        with self.lock:
            callback = self.inflight.pop(mid, None)
            if callback is None:
                self.completed.add(mid)
                return

        if reason_code.is_failure:
            self._notify(callback, BrokerError('Delivery failed: {}'.format(reason_code),
                                               reason_code.value))
        else:
            self._notify(callback, None)

    @staticmethod
    def _notify(callback, error):
        try:
            callback(error)
        except Exception:
            logging.exception('Publish callback failed')
