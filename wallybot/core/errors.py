class WallyBotError(Exception):
    """Base exception for message-handling failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(WallyBotError):
    """User-supplied parameter is missing or malformed; answered with a guidance reply"""
    pass


class UpstreamError(WallyBotError):
    """Data provider call failed; answered with an error reply, HTTP status stays 200"""
    pass
