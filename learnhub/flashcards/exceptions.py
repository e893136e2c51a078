"""
Error taxonomy for flashcard scheduling.

Routers translate these into HTTP responses; services and the store raise them.
"""


class FlashcardError(Exception):
    """Base class for flashcard scheduling errors."""


class ValidationError(FlashcardError):
    """Request rejected before any state was touched."""


class InvalidQualityError(ValidationError):
    def __init__(self, quality):
        self.quality = quality
        super().__init__(f"Quality must be one of 0 (Again), 1 (Hard), 2 (Good), 3 (Easy); got {quality!r}")


class EmptySetSelectionError(ValidationError):
    def __init__(self):
        super().__init__("No set IDs provided.")


class NotFoundOrUnauthorized(FlashcardError):
    """The object does not exist or belongs to another user. Callers cannot tell which."""


class CardNotFoundError(NotFoundOrUnauthorized):
    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__("Flashcard not found")


class SetNotFoundError(NotFoundOrUnauthorized):
    def __init__(self, set_id):
        self.set_id = set_id
        super().__init__("Flashcard set not found")


class PersistenceError(FlashcardError):
    """The database write failed and was rolled back."""


class CollaboratorError(FlashcardError):
    """An external collaborator (report generation) failed."""


class SessionError(FlashcardError):
    pass


class SessionIncompleteError(SessionError):
    def __init__(self, recorded: int, total_due: int):
        self.recorded = recorded
        self.total_due = total_due
        super().__init__(f"Session is not complete: {recorded} of {total_due} cards reviewed")


class SessionAlreadyCompleteError(SessionError):
    def __init__(self, total_due: int):
        self.total_due = total_due
        super().__init__(f"Session already has all {total_due} reviews recorded")
