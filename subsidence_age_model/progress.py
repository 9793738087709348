"""
Runtime tracking and progress display for long bootstrap runs.
"""

import time
from contextlib import contextmanager
from datetime import timedelta


def format_elapsed(seconds):
    """Format seconds as human-readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds/60:.1f}min"
    else:
        return str(timedelta(seconds=int(seconds)))


class AnalysisTimer:
    """
    Track runtime for pipeline steps.

    Usage:
        timer = AnalysisTimer()
        with timed_step(timer, "Bootstrap"):
            results = run_bootstrap(observations)
        timer.summary()
    """

    def __init__(self):
        self.steps = []
        self.current_step = None
        self.start_time = None
        self.overall_start = None

    def start(self, step_name):
        """Start timing a new step."""
        if self.overall_start is None:
            self.overall_start = time.time()
        self.current_step = step_name
        self.start_time = time.time()

    def stop(self):
        """Stop timing current step and record it."""
        if self.start_time is None:
            return None

        elapsed = time.time() - self.start_time
        self.steps.append({'step': self.current_step, 'duration': elapsed})
        self.start_time = None
        self.current_step = None
        return elapsed

    def summary(self, verbose=True):
        """Print and return per-step timings."""
        if not self.steps:
            if verbose:
                print("\nNo timing data recorded.")
            return None

        total = sum(s['duration'] for s in self.steps)
        overall = time.time() - self.overall_start if self.overall_start else total

        if verbose:
            print("\n" + "=" * 60)
            print("RUNTIME SUMMARY")
            print("=" * 60)
            for step in self.steps:
                pct = (step['duration'] / total) * 100 if total > 0 else 0
                print(f"{step['step']:<40} {format_elapsed(step['duration']):>10} ({pct:>4.1f}%)")
            print("-" * 60)
            print(f"{'Overall runtime':<40} {format_elapsed(overall):>15}")
            print("=" * 60)

        return {'steps': list(self.steps), 'total': total, 'overall': overall}


@contextmanager
def timed_step(timer, step_name, verbose=True):
    """Context manager for timing pipeline steps."""
    timer.start(step_name)
    try:
        yield
    finally:
        elapsed = timer.stop()
        if verbose and elapsed is not None:
            print(f"  [DONE] {step_name} completed in {format_elapsed(elapsed)}")


class ProgressBar:
    """
    Text progress bar for the bootstrap loop.

    Redraws at most `n_updates` times so thousands of iterations do not
    flood the console.
    """

    def __init__(self, total, desc="Bootstrap", width=40, n_updates=100, enabled=True):
        self.total = total
        self.desc = desc
        self.width = width
        self.enabled = enabled
        self.current = 0
        self.every = max(1, total // max(1, n_updates))
        self.start_time = time.time()

    def update(self, n=1):
        """Advance by n steps."""
        self.current += n
        if self.enabled and (self.current % self.every == 0 or self.current == self.total):
            self._display()

    def _display(self):
        if self.total == 0:
            return

        pct = self.current / self.total
        filled = int(self.width * pct)
        bar = "█" * filled + "░" * (self.width - filled)

        elapsed = time.time() - self.start_time
        eta = (elapsed / self.current) * (self.total - self.current) if self.current else 0
        print(f"\r  {self.desc}: |{bar}| {self.current}/{self.total} ({pct*100:.0f}%) "
              f"ETA: {format_elapsed(eta)}", end="", flush=True)

    def close(self):
        """Finish and print newline."""
        if self.enabled:
            elapsed = time.time() - self.start_time
            print(f"\r  {self.desc}: Completed {self.current} iterations in "
                  f"{format_elapsed(elapsed)}" + " " * 20)


def print_step_header(step_num, total_steps, title):
    """Print a formatted step header with progress."""
    bar_width = 30
    filled = int(bar_width * step_num / total_steps)
    bar = "█" * filled + "░" * (bar_width - filled)

    print(f"\n[{bar}] Step {step_num}/{total_steps}")
    print("-" * 60)
    print(f"  {title}")
    print("-" * 60)
