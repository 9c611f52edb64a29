"""
Progress reporting for long-running shell operations.

Separates the batch and duplicate logic from how progress is displayed.
"""


class ProgressCallback:
    """Callback interface for progress updates."""

    def on_start(self, task: str, total: int) -> None:
        """Called when a task starts."""
        pass

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        """Called to report progress within a task."""
        pass

    def on_complete(self, task: str, result_count: int) -> None:
        """Called when a task is complete."""
        pass


class ConsoleProgress(ProgressCallback):
    """Prints progress to stdout."""

    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def on_start(self, task: str, total: int) -> None:
        if self.verbose:
            print(f"[i] {task}: {total} item(s)")

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        if total <= 0:
            return
        percent = current * 100 // total
        print(f"[i] {message} {percent}% ({current}/{total})")

    def on_complete(self, task: str, result_count: int) -> None:
        if self.verbose:
            print(f"[i] {task} complete: {result_count}")
