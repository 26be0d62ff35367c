class RewardError(Exception):
    pass


class RewardUserNotFoundError(RewardError):
    pass


class RewardUserInactiveError(RewardError):
    pass


class RewardNotFoundError(RewardError):
    pass


class RewardInsufficientPointsError(RewardError):
    pass
