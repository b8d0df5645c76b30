"""Document key allocation."""

import uuid


class KeyAllocator:
    """Generates random version-4 UUID keys for documents without one."""

    def allocate(self) -> str:
        return str(uuid.uuid4())
