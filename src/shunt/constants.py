"""Shared constants for shunt."""

RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"

# Bytes requested per read from a child's output stream.
READ_SIZE = 4096

# Seconds to wait for children after forwarding a termination signal.
DEFAULT_GRACE_PERIOD = 5.0

# Process exit code reported for a command that could not be started.
LAUNCH_FAILURE_EXIT_CODE = 127

# Offset added to a signal number to form a shell-style exit code.
SIGNAL_EXIT_OFFSET = 128
