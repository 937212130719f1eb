# Error taxonomy shared by the allocation, decline and reconciliation calculators


class VolumeAccountingError(Exception):
    '''Base class for every error raised by the volume accounting engine.'''


class InvalidInput(VolumeAccountingError, ValueError):
    '''
    Raised for structurally invalid or nonsensical input such as negative volumes, an empty
    well list, all-zero pro-rata factors or out-of-range decline parameters. Deterministic:
    the same input always fails the same way and must be corrected by the caller.
    '''


class IllegalTransition(VolumeAccountingError):
    '''Raised when a reconciliation status change is not an edge of the review graph.'''

    def __init__(self, current, requested, reason=None):
        self.current = current
        self.requested = requested
        message = f"Cannot move reconciliation from '{current}' to '{requested}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
