class XbmqError(Exception):
    pass


class BrokerError(XbmqError):
    def __init__(self, message, reason_code=None):
        super().__init__(message)
        self.reason_code = reason_code


# a lifecycle bug rather than a transport problem
class AlreadyConnectedError(BrokerError):
    def __init__(self, message='Client is already connected.'):
        super().__init__(message)


class NotConnectedError(BrokerError):
    def __init__(self, message='Client is not connected.'):
        super().__init__(message)


class SessionClosedError(XbmqError):
    pass


class RadioError(XbmqError):
    pass


class RadioTimeoutError(RadioError):
    pass
