class PointsError(Exception):
    pass


class PointsUserNotFoundError(PointsError):
    pass


class PointsInsufficientBalanceError(PointsError):
    pass


class PointsInvalidAdjustmentError(PointsError):
    pass
