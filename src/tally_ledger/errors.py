"""Named failures raised by the ledger.

Each error also derives from the builtin a caller would naturally catch
(KeyError for missing entries, ValueError for bad input, PermissionError for
guard failures), the same split the HTTP layer maps onto status codes.
"""


class LedgerError(Exception):
    """Base class for every ledger failure."""


class ChoiceNotFound(LedgerError, KeyError):
    def __init__(self, choice_key):
        super().__init__(f"choice not registered: {choice_key!r}")
        self.choice_key = choice_key

    def __str__(self) -> str:
        return self.args[0]


class UnknownRequest(LedgerError, KeyError):
    def __init__(self, request_id):
        super().__init__(f"no pending decryption request: {request_id!r}")
        self.request_id = request_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidProof(LedgerError, ValueError):
    pass


class CommitmentMismatch(LedgerError, ValueError):
    pass


class InvalidBallot(LedgerError, ValueError):
    pass


class UnauthorizedCaller(LedgerError, PermissionError):
    pass


class DuplicateVote(LedgerError, PermissionError):
    pass


class PollNotFound(LedgerError, KeyError):
    def __init__(self, poll_id):
        super().__init__(f"no such poll: {poll_id!r}")
        self.poll_id = poll_id

    def __str__(self) -> str:
        return self.args[0]
