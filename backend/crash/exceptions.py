class WagerError(Exception):
    pass


class InvalidAmount(WagerError):
    pass


class InvalidWager(WagerError):
    """
    Not found, owned by someone else, or no longer ACTIVE.
    Callers must not be able to tell these apart.
    """

    def __init__(self, message="Invalid or expired wager."):
        super().__init__(message)


class FraudDetected(WagerError):
    def __init__(self, message="Fraud detected. Wager voided."):
        super().__init__(message)
