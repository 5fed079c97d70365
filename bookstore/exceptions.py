class StoreError(Exception):
    """Unexpected persistence failure, already rolled back and logged."""

    def __init__(self, message: str = "Something went wrong. Please try again."):
        super().__init__(message)
        self.message = message
