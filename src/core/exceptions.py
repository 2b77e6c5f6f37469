"""Errors raised by the domain layer, the boundary models and the service"""


class GameError(Exception):
    """Base class: anything the match can reject without aborting."""


class InvalidLayoutError(GameError):
    """Layout notation that cannot be parsed into a board"""


class GameStateError(GameError):
    """Operation requested in a phase that does not allow it"""


class UnknownLevelError(GameStateError):
    pass


class NotYourTurnError(GameError):
    pass


class IllegalActionError(GameError):
    """The requested action is not in the generated set of legal actions"""


class AmbiguousActionError(IllegalActionError):
    """More than one action kind applies to the target cell and none was chosen"""


class DraftConstraintError(GameError):
    """Placement rules of the draft phase"""


class BetrayalInventoryError(GameError):
    """
    Internal consistency problem: a betrayal was applied but the hand holds no matching piece.
    Never raised out of the Game: recorded and logged, the action degrades to a plain stack.
    """


class RemoteProtocolError(GameError):
    """Malformed or unknown message received from the remote peer"""


class InvalidRequestError(GameError):
    """Invalid external input (ruleset configuration)"""
