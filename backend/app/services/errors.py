class SchedulingInvariantError(AssertionError):
    """Raised when the allocator is about to produce an impossible block.

    This always indicates a bug in the scheduler rather than bad user input.
    """
