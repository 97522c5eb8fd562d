"""Logging formatter and filter that tag records with the running scenario."""

import logging


class ScenarioFormatter(logging.Formatter):
    """Logging formatter that prepends the scenario name when one is set."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with scenario prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional ``[scenario]`` prefix
        """
        msg = super().format(record)
        scenario = getattr(record, "scenario", None)

        if scenario:
            return f"[{scenario}] {msg}"

        return msg


class ScenarioFilter(logging.Filter):
    """Filter that stamps records with the name of the current scenario.

    The hooks call :meth:`enter` before a scenario and :meth:`leave` after it;
    records emitted in between carry a ``scenario`` attribute. Records that
    already set ``scenario`` through ``extra`` keep their own value.
    """

    def __init__(self) -> None:
        super().__init__()
        self.current: str | None = None

    def enter(self, scenario_name: str) -> None:
        self.current = scenario_name

    def leave(self) -> None:
        self.current = None

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "scenario", None) is None:
            record.scenario = self.current
        return True


def configure_logging(level: int = logging.INFO) -> ScenarioFilter:
    """Install a stderr handler with scenario tagging on the root logger.

    Calling it again reuses the handler installed by the first call and only
    updates the level.

    Parameters
    ----------
    level : int
        Root log level

    Returns
    -------
    ScenarioFilter
        Filter to be driven by the scenario hooks
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for existing in root_logger.handlers:
        for handler_filter in existing.filters:
            if isinstance(handler_filter, ScenarioFilter):
                return handler_filter

    scenario_filter = ScenarioFilter()

    handler = logging.StreamHandler()
    handler.setFormatter(
        ScenarioFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    handler.addFilter(scenario_filter)

    root_logger.addHandler(handler)

    for noisy in ["urllib3", "asyncio"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return scenario_filter
