class PhiAccrualError(Exception):
    pass


class InvalidConfiguration(PhiAccrualError):
    pass


class InvariantViolation(PhiAccrualError):
    pass


class SearchDidNotConverge(PhiAccrualError):
    pass
