from functools import lru_cache

from ..config import settings
from ..cosense.browser import PortAllocator
from ..cosense.client import CosenseClient

# One allocator for every client this process creates, so each headless
# browser gets its own remote-debugging port.
port_allocator = PortAllocator(settings.debugging_port_start)


@lru_cache
def get_cosense_client() -> CosenseClient:
    return CosenseClient(settings, ports=port_allocator)
