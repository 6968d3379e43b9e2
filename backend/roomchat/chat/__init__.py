"""Direct messaging core: presence registry, message relay, disconnect reaper.

Nothing in this package knows about Socket.IO or HTTP. Transport code hands it
connection handles and a ``deliver`` callable, keeping connection plumbing
separate from the messaging rules.
"""

from .errors import ChatError, PersistenceError, TransportError, ValidationError
from .registry import ConnectionHandle, ConnectionRegistry
from .service import ChatService
