# importers/_base_Importer.py

import io
import logging

from django.utils import timezone

logger = logging.getLogger("importers")


class BaseImporter:
    """
    Abstract importer class providing:
    - structured logging (to console, buffer and the ``importers`` logger)
    - summary counters for test assertions
    - a row loop that counts failures instead of aborting the run
    """

    def __init__(self, log_to_console=False):
        self.log_to_console = log_to_console
        self.buffer = io.StringIO()
        self.counters = {
            "rows": 0,
            "added": 0,
            "skipped": 0,
            "errors": 0,
        }
        self.start_time = timezone.now()

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------
    def log(self, message, emoji="💬", level=logging.INFO):
        timestamp = timezone.now().strftime("%H:%M:%S")
        line = f"[{timestamp}] {emoji} {message}"
        self.buffer.write(line + "\n")
        logger.log(level, "%s %s", emoji, message)
        if self.log_to_console:
            print(line)

    def get_log_output(self):
        return self.buffer.getvalue()

    # ---------------------------------------------------------------------
    # Summary
    # ---------------------------------------------------------------------
    def summarize(self):
        elapsed = (timezone.now() - self.start_time).total_seconds()
        summary = (
            f"\n📊 Import Summary\n"
            f"Rows: {self.counters['rows']}\n"
            f"Added: {self.counters['added']}\n"
            f"Skipped: {self.counters['skipped']}\n"
            f"Errors: {self.counters['errors']}\n"
            f"Elapsed: {elapsed:.2f}s\n"
        )
        self.log(summary, "✅")
        return summary

    # ---------------------------------------------------------------------
    # Abstract Hooks
    # ---------------------------------------------------------------------
    def process_row(self, row):
        """To be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement process_row()")

    def run(self, rows):
        """Main loop for importers. Pass in any iterable of source rows."""
        self.log("Starting import...", "🚀")

        for row in rows:
            self.counters["rows"] += 1
            try:
                self.process_row(row)
            except Exception as e:
                self.counters["errors"] += 1
                self.log(f"Error processing row: {e}", "❌", level=logging.WARNING)

        self.summarize()
        return self.buffer.getvalue()
