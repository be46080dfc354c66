import logging


logger = logging.getLogger(__name__)


class LegoptBaseError(Exception):
    """
    Base class for all legopt errors.

    Args:
        message: what went wrong
        context: optional hint on where it went wrong
    """

    def __init__(self, message: str, context: str | None = None) -> None:
        self.message = message
        self.context = context
        logger.debug("legopt exception: %s", self._format_message())
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} (Context: {self.context})"
        return self.message


class ConfigurationError(LegoptBaseError):
    """
    Raised at build time when the motion parameters cannot describe a problem.

    Examples:
        - phase durations of a leg not summing to the total duration
        - unknown constraint or cost name
        - leg count of the schedule differs from the robot model
    """

    pass


class DataIntegrityError(LegoptBaseError):
    """
    Raised when a query does not match the layout fixed at build time,
    e.g. a flat variable vector of the wrong length or an unknown block name.
    """

    pass


class KinematicInfeasibilityError(LegoptBaseError):
    """
    Raised by an inverse kinematics solver for a single foot position it
    cannot reach. Never aborts assembly or extraction.
    """

    pass
