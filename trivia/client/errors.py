class ClientError(Exception):
    """An action refused locally, before anything is sent to the server."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class RemoteError(Exception):
    """The server rejected a call or could not be reached."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
