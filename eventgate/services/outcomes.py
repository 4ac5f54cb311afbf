"""
Outcome recording.

Every route execution and every request-level rejection produces an
``OutcomeRecord``. The recorder hands it to the in-memory debug log and
to the ``eventgate.outcomes`` logger, which writes JSON lines to the
rotating log file when file logging is enabled.
"""

from typing import Any, Dict, Optional

from eventgate.config.logging import OUTCOME_LOGGER_NAME, StructuredLogger, get_logger
from eventgate.models.outcome import OutcomeRecord
from eventgate.services.debug_log import DebugLog, redact
from eventgate.utils.helpers import current_timestamp

logger = get_logger(__name__)


class OutcomeRecorder:
    """Fans outcome records out to the debug log and the outcome logger."""

    def __init__(
        self,
        debug_log: DebugLog,
        outcome_logger: Optional[StructuredLogger] = None,
        include_request_body: bool = False,
        test_mode: bool = False
    ):
        """
        Args:
            debug_log: In-memory ring buffer behind ``/debug``
            outcome_logger: Structured logger for the outcome file
            include_request_body: Add the redacted inbound payload to file records
            test_mode: Mark file records with ``test_mode: true``
        """
        self.debug_log = debug_log
        self.outcome_logger = outcome_logger or StructuredLogger(OUTCOME_LOGGER_NAME)
        self.include_request_body = include_request_body
        self.test_mode = test_mode

    def record(self, outcome: OutcomeRecord) -> None:
        """
        Record an outcome. Never raises.

        Args:
            outcome: Outcome of a route execution or a rejected request
        """
        try:
            if not outcome.timestamp:
                outcome.timestamp = current_timestamp()

            data = outcome.to_dict()
            self.debug_log.add(data)
            self.outcome_logger.log_outcome(self._file_record(data))
        except Exception as e:
            logger.error(
                f"Failed to record outcome: {e}",
                extra={"request_id": outcome.request_id, "route_name": outcome.route_name},
                exc_info=True
            )

    def _file_record(self, data: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(data)
        original = record.pop("original_payload", None)
        transformed = record.pop("transformed_payload", None)

        if self.include_request_body and original is not None:
            record["request_body"] = redact(original)
        if transformed is not None and transformed != original:
            record["transformed_payload"] = redact(transformed)
        if self.test_mode:
            record["test_mode"] = True

        return record
