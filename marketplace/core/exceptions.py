class DataAccessError(Exception):
    """
    Exception raised when a store operation fails at the database layer.

    Carries a fixed, human-readable message per operation. The underlying
    database error is chained and logged, never shown to the caller.
    """
    def __init__(self, message: str = "A database error occurred."):
        self.message = message
        super().__init__(self.message)


class ProfileExistsError(DataAccessError):
    """
    Exception raised when creating a profile for a user who already has one
    """
    def __init__(self, message: str = "Failed to create profile."):
        super().__init__(message)
