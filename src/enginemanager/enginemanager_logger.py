"""
JSON-line structured logging for the enginemanager framework.
"""

import inspect
import logging

from pydantic import BaseModel


class LogLine(BaseModel):
    """
    Represents a line in the enginemanager log
    """

    caller_file: str
    caller_name: str
    caller_line: int
    level: str
    message: str


class EngineManagerLogger:
    """
    Logger class
    """

    def __init__(self, name: str = "enginemanager") -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

    def log(self, debug_message: str, level: int) -> None:
        """
        Log the debug message at the given level, tagged with the caller's location.
        """
        debug_message = debug_message.replace("'", '"').replace("\n", " ")

        # Collect details about the callee
        curframe = inspect.currentframe()
        calframe = inspect.getouterframes(curframe, 2)
        caller_file = calframe[1][1].split("/")[-1]
        caller_line = calframe[1][2]
        caller_name = calframe[1][3]

        debug_log_line = LogLine(
            caller_file=caller_file,
            caller_name=caller_name,
            caller_line=caller_line,
            level=logging.getLevelName(level),
            message=debug_message,
        )

        self.logger.log(level=level, msg=debug_log_line.model_dump_json())
