# ----------------------------------------------------------------
# Custom Exceptions
# ----------------------------------------------------------------
class OptimizerError(Exception):
    """Base exception for optimizer errors."""

    pass


class PrivilegeError(OptimizerError):
    """Raised when the tool is not running with root privileges."""

    pass


class ConfigWriteError(OptimizerError):
    """Raised when a configuration file cannot be written or restored."""

    pass
