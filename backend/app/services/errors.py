"""Domain errors raised by the auction core. The HTTP layer maps them to status codes."""


class AuctionError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidState(AuctionError):
    """Operation is not allowed for the artwork's current status or auction window."""
    status_code = 409


class Forbidden(AuctionError):
    status_code = 403


class InvalidInput(AuctionError):
    status_code = 400


class InvalidBid(AuctionError):
    """Bid amount is not strictly greater than the current bid."""
    status_code = 400


class NotFound(AuctionError):
    status_code = 404
