class GameError(Exception):
    pass


class ValidationError(GameError, ValueError):
    pass


class EmptySupplyError(GameError):
    pass


class IllegalActionError(GameError):
    pass


class RuleViolation(GameError):
    """Base for route-building rule failures.

    These are never raised out of ``Player.build_route``; they are carried in
    the returned ``RouteBuildResult`` instead.
    """


class RouteNotFoundError(RuleViolation):
    pass


class RouteClaimedError(RuleViolation):
    pass


class ColorMismatchError(RuleViolation):
    pass


class InsufficientCardsError(RuleViolation):
    pass


class InsufficientTrainsError(RuleViolation):
    pass
