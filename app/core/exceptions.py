"""Engine exceptions."""


class ConfigurationError(Exception):
    """Stored availability data or a timezone identifier cannot be interpreted.

    Never a business-rule rejection: the HTTP layer answers 500 and logs it.
    """


class BookingRejected(Exception):
    """A write was refused because the conflict check failed."""

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason.message)


class BookingNotEditable(Exception):
    """The booking is in a state that forbids the requested change."""
