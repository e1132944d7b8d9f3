class RegistrationError(Exception):
    """Base class for every rejection the registration flow can report."""


class ValidationError(RegistrationError):
    pass


class NotFoundError(RegistrationError):
    pass


class ClosedError(RegistrationError):
    pass


class CapacityError(RegistrationError):
    """Confirmed list is full; the caller should queue the pair instead."""


class DuplicateParticipantError(RegistrationError):
    def __init__(self, name):
        super().__init__(f"{name} is already registered for this game")
        self.name = name


class DuplicatePairError(RegistrationError):
    def __init__(self, pair):
        super().__init__(f"pair {pair!r} is already registered for this game")
        self.pair = pair


class NotOrganizerError(RegistrationError):
    pass


class StorageError(RegistrationError):
    pass


class PublishFallbackWarning(UserWarning):
    """Editing the channel post failed and a fresh post was sent instead."""
