import abc
from typing import Callable, Dict, List, Tuple

from radio_frames import RadioFrame

# handler(address, data)
DataListener = Callable[[str, bytes], None]

# handler(address, {line: value})
SampleListener = Callable[[str, Dict[int, int]], None]


# radio link interface, with methods relevant to the gateway.
# addresses are hex strings of the 64-bit hardware address
class RadioLink(abc.ABC):
    @abc.abstractmethod
    def open(self):
        pass

    @abc.abstractmethod
    def close(self):
        pass

    @abc.abstractmethod
    def is_open(self) -> bool:
        return False

    @abc.abstractmethod
    def get_address(self) -> str:
        return ''

    # fire and forget, no reply expected
    @abc.abstractmethod
    def send(self, frame: RadioFrame, dest: str):
        pass

    # send and block until the matching response arrives
    @abc.abstractmethod
    def request(self, frame: RadioFrame, dest: str, timeout: float) -> RadioFrame:
        pass

    # returns (address, node identifier) for every node that answered
    @abc.abstractmethod
    def discover_nodes(self, timeout: float) -> List[Tuple[str, str]]:
        return []

    @abc.abstractmethod
    def add_data_listener(self, handler: DataListener):
        pass

    @abc.abstractmethod
    def add_sample_listener(self, handler: SampleListener):
        pass
