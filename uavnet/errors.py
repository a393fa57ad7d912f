"""
Error types for the UAV network simulator
"""


class SimulationError(Exception):
    """Base class for every error raised by the simulator"""


class InvalidParameter(SimulationError, ValueError):
    """A configuration value is out of range or inconsistent"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.reason = message
        super().__init__(f"{field}: {message}")


class InvalidState(SimulationError, ValueError):
    """An imported world document is malformed or inconsistent"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.reason = message
        super().__init__(f"{field}: {message}")
