"""
Error taxonomy for the bank service.

Services raise these; the HTTP layer turns them into ``{"message": ...}``
responses with the attached status code.
"""


class BankError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BankError):
    status_code = 400


class NotFound(BankError):
    status_code = 404


class Unauthorized(BankError):
    status_code = 401


class Conflict(BankError):
    # 409 would be the textbook code; clients already expect 400
    status_code = 400


class InsufficientFunds(BankError):
    status_code = 400


class InternalError(BankError):
    status_code = 500

    def __init__(self, message: str = "Server error. Please try again."):
        super().__init__(message)
