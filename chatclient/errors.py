class ChatClientError(Exception):
    """Base class for chat client failures."""


class FrameError(ChatClientError):
    """Text or bytes that cannot form a valid frame."""


class ConnectError(ChatClientError):
    """The connection to the server could not be established."""


class AddressError(ChatClientError):
    """A server address or port given on the command line is unusable."""
